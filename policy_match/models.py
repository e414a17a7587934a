"""Data classes for the extraction and compliance pipeline."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Rule:
    rule_id: str
    rule_text: str


@dataclass
class ComplianceVerdict:
    is_compliant: bool
    compliance_percentage: int   # always within [0, 100]
    violations: list[str] = field(default_factory=list)
    is_human_review_required: bool = False

    def to_dict(self) -> dict:
        return {
            "is_compliant": self.is_compliant,
            "compliance_percentage": self.compliance_percentage,
            "violations": list(self.violations),
            "is_human_review_required": self.is_human_review_required,
        }


@dataclass(frozen=True)
class Message:
    role: str        # "system", "user" or "assistant"
    content: str


@dataclass
class ModelRequest:
    """One schema-constrained chat-completion call."""

    messages: list[Message]
    model_id: str
    output_schema: dict[str, Any]
    max_output_tokens: int
    stop_sequences: list[str]
    temperature: float = 0.0
    nucleus_sampling_p: float = 1.0
    stream: bool = False
    schema_name: str = "response"

    def to_payload(self) -> dict[str, Any]:
        """Render the chat-completions wire envelope."""
        return {
            "model": self.model_id,
            "messages": [{"role": m.role, "content": m.content} for m in self.messages],
            "temperature": self.temperature,
            "max_completion_tokens": self.max_output_tokens,
            "top_p": self.nucleus_sampling_p,
            # The payload is parsed as a whole, so it must arrive complete.
            "stream": False,
            "stop": list(self.stop_sequences),
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": self.schema_name,
                    "schema": self.output_schema,
                },
            },
        }


@dataclass(frozen=True)
class ModelResponse:
    raw_content: str


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------

@dataclass
class StoredRule:
    id: str
    policy_id: str
    rule_id: str
    rule_text: str
    position: int = 0   # extraction order within the policy

    def to_rule(self) -> Rule:
        return Rule(rule_id=self.rule_id, rule_text=self.rule_text)


@dataclass
class Policy:
    id: str
    title: str
    category: str
    path: str
    extension: str
    created_at: str = ""
    rules: list[StoredRule] = field(default_factory=list)


@dataclass
class Document:
    id: str
    policy_id: str
    title: str
    path: str
    extension: str
    is_compliant: bool
    compliance_percentage: int
    is_human_review_required: bool
    violations: list[str] = field(default_factory=list)
    created_at: str = ""
    policy_title: str = ""


@dataclass
class Page:
    items: list
    page: int
    page_size: int
    total: int
