from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class ChatResult:
    answer: str
    sources: List[Dict[str, Any]] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"answer": self.answer, "sources": self.sources, "meta": self.meta}
