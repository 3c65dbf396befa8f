import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Tuple

from claimgraph.core.prompts import (
    DecompositionPrompts,
    GraphExtractionPrompts,
    RelationPrompts,
    SelectionPrompts,
    StancePrompts,
)

STEPS = {
    SelectionPrompts.GUIDELINES: "selection",
    DecompositionPrompts.GUIDELINES: "decomposition",
    GraphExtractionPrompts.GUIDELINES: "graph",
    RelationPrompts.GUIDELINES: "relations",
    StancePrompts.GUIDELINES: "stance",
}


class ScriptedChain:
    """Stands in for ModelChain and answers every step from a per-step handler.

    Handlers receive the decoded JSON payload and return either a string (sent back
    verbatim) or a JSON-serializable object. A handler may also raise.
    """

    def __init__(self):
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "selection": lambda data: {"keep": True, "sentence": data["sentence"], "kind": "factual"},
            "decomposition": lambda data: {"claims": [data["sentence"]]},
            "graph": lambda data: "no graph scripted",
            "relations": lambda data: {"relations": []},
            "stance": lambda data: {"verifications": []},
        }

    def on(self, step: str, handler: Callable[[Dict[str, Any]], Any]) -> "ScriptedChain":
        self.handlers[step] = handler
        return self

    def graphs(self, table: Dict[str, Dict[str, Any]]) -> "ScriptedChain":
        """Answers graph extraction from a claim text -> graph output table (trailing period ignored)."""
        def handler(data):
            claim = data["claim"].strip().rstrip(".")
            return table.get(claim, "unknown claim")
        return self.on("graph", handler)

    def steps(self, step: str) -> List[Dict[str, Any]]:
        return [data for name, data in self.calls if name == step]

    async def generate(self, instructions: str, payload: str, attempt: int = 1) -> str:
        step = STEPS[instructions]
        data = json.loads(payload)
        self.calls.append((step, data))
        result = self.handlers[step](data)
        return result if isinstance(result, str) else json.dumps(result)


def graph(subject: str, predicate: str, obj: str, modifiers=None) -> Dict[str, Any]:
    return {
        "core": {"subject": subject, "predicate": predicate, "object": obj},
        "modifiers": modifiers or [],
    }


class FakeOllamaClient:
    """Mimics ollama.AsyncClient.chat with a queue of outcomes (content strings or exceptions)."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def chat(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return SimpleNamespace(message=SimpleNamespace(content=outcome))
