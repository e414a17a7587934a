"""Output schemas sent to the model and the payload models used to parse them.

The JSON schema handed to the endpoint and the pydantic model that parses the
reply are declared side by side so they cannot drift apart.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True)
class SchemaField:
    name: str
    type: FieldType
    description: str = ""
    required: bool = True
    items: Optional["SchemaField | ObjectSchema"] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def render(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type.value}
        if self.description:
            out["description"] = self.description
        if self.minimum is not None:
            out["minimum"] = self.minimum
        if self.maximum is not None:
            out["maximum"] = self.maximum
        if self.items is not None:
            out["items"] = self.items.render()
        return out


@dataclass(frozen=True)
class ObjectSchema:
    fields: tuple[SchemaField, ...] = field(default_factory=tuple)

    @property
    def required(self) -> list[str]:
        return [f.name for f in self.fields if f.required]

    def render(self) -> dict[str, Any]:
        return {
            "type": FieldType.OBJECT.value,
            "properties": {f.name: f.render() for f in self.fields},
            "required": self.required,
            "additionalProperties": False,
        }


# ---------------------------------------------------------------------------
# Rule extraction
# ---------------------------------------------------------------------------

RULE_ITEM_SCHEMA = ObjectSchema(fields=(
    SchemaField("rule_id", FieldType.STRING, "Identifier as numbered in the policy"),
    SchemaField("rule_text", FieldType.STRING, "Full wording of the rule"),
))

RULES_SCHEMA = ObjectSchema(fields=(
    SchemaField(
        "rules", FieldType.ARRAY, "The rules of the policy", items=RULE_ITEM_SCHEMA,
    ),
))


class RulePayload(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    rule_id: str
    rule_text: str


class ExtractRulesPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    rules: list[RulePayload]


# ---------------------------------------------------------------------------
# Compliance check
# ---------------------------------------------------------------------------

VERDICT_SCHEMA = ObjectSchema(fields=(
    SchemaField(
        "is_compliant", FieldType.BOOLEAN,
        "Whether the document is compliant with the policy",
    ),
    SchemaField(
        "compliance_percentage", FieldType.INTEGER,
        "The compliance percentage with the policy",
        minimum=0, maximum=100,
    ),
    SchemaField(
        "violations", FieldType.ARRAY, "The violated rules of the policy",
        items=SchemaField("violation", FieldType.STRING),
    ),
    SchemaField(
        "is_human_review_required", FieldType.BOOLEAN,
        "Whether the document requires human review",
    ),
))


class VerdictPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    is_compliant: bool
    # Out-of-range scores are rejected, never clamped.
    compliance_percentage: int = Field(ge=0, le=100)
    violations: list[str]
    is_human_review_required: bool

    @field_validator("compliance_percentage", mode="before")
    @classmethod
    def whole_number(cls, v: Any) -> Any:
        # 87.0 is a whole number; booleans and strings are not.
        if isinstance(v, float) and v.is_integer():
            return int(v)
        if isinstance(v, int) and not isinstance(v, bool):
            return v
        raise ValueError(f"compliance_percentage must be a whole number, got {v!r}")
