"""Submission report persisted by the command line session."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from .models import Submission, SubmissionSource


@dataclass
class CaptureReport:
    """Submissions captured during one session, in arrival order."""

    seed_url: str = ""
    submissions: List[Submission] = field(default_factory=list)

    def add(self, submission: Submission) -> None:
        self.submissions.append(submission)

    def by_source(self, source: SubmissionSource) -> List[Submission]:
        return [item for item in self.submissions if item.source is source]

    def to_json(self) -> str:
        data = {
            "seed_url": self.seed_url,
            "submissions": [item.to_dict() for item in self.submissions],
        }
        return json.dumps(data, indent=4, ensure_ascii=False)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        temp_path.write_text(self.to_json(), encoding="utf-8")
        temp_path.replace(path)

    @classmethod
    def load(cls, path: Path) -> "CaptureReport":
        raw = json.loads(path.read_text(encoding="utf-8"))
        return cls(
            seed_url=raw.get("seed_url", ""),
            submissions=[Submission.from_dict(item) for item in raw.get("submissions", [])],
        )
