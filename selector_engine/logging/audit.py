from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from selector_engine.core.metadata import ResolutionAttempt


class ResolutionAuditLogger:
    """Persists resolution attempts and the latest accepted selector per key."""

    def __init__(self, root: str | Path = "artifacts") -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.resolutions_path = self.root / "resolutions.jsonl"
        self.selector_overrides_path = self.root / "selector_overrides.json"

    def write(self, attempt: ResolutionAttempt) -> None:
        with self.resolutions_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(attempt), default=str) + "\n")

        if attempt.key and attempt.success:
            overrides = self.read_overrides()
            overrides[attempt.key] = attempt.selector
            self.selector_overrides_path.write_text(
                json.dumps(overrides, indent=2, sort_keys=True),
                encoding="utf-8",
            )

    def read_attempts(self) -> list[dict]:
        if not self.resolutions_path.exists():
            return []
        with self.resolutions_path.open("r", encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]

    def read_overrides(self) -> dict[str, str]:
        if not self.selector_overrides_path.exists():
            return {}
        return json.loads(self.selector_overrides_path.read_text(encoding="utf-8"))
