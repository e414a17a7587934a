from policy_match.models import Rule
from policy_match.prompts import (
    COMPLIANCE_STOP,
    COMPLIANCE_SYSTEM_PROMPT,
    EXTRACT_RULES_SYSTEM_PROMPT,
    EXTRACTION_STOP,
    build_compliance_message,
    build_compliance_request,
    build_rule_extraction_request,
)
from policy_match.schema import (
    RULE_ITEM_SCHEMA,
    RULES_SCHEMA,
    VERDICT_SCHEMA,
    ExtractRulesPayload,
    RulePayload,
    VerdictPayload,
)


def test_rule_extraction_request_shape(settings):
    req = build_rule_extraction_request("1. No smoking.", settings)

    assert [m.role for m in req.messages] == ["system", "user"]
    assert req.messages[0].content == EXTRACT_RULES_SYSTEM_PROMPT
    assert req.messages[1].content.startswith("Policy:\n")
    assert "1. No smoking." in req.messages[1].content
    assert req.temperature == 0
    assert req.nucleus_sampling_p == 1.0
    assert req.stream is False
    assert req.stop_sequences == [EXTRACTION_STOP]
    assert req.max_output_tokens == settings.extraction_max_tokens
    assert req.model_id == "test-model"


def test_compliance_request_shape(settings):
    rules = [Rule("1", "No smoking indoors."), Rule("2", "ID badges required.")]
    req = build_compliance_request(rules, "Employees smoke in the lobby.", settings)

    assert req.messages[0].content == COMPLIANCE_SYSTEM_PROMPT
    assert req.messages[1].content == (
        "Policy:\n"
        "- No smoking indoors.\n"
        "- ID badges required.\n"
        "Document:\n"
        "Employees smoke in the lobby.\n"
    )
    assert req.stop_sequences == [COMPLIANCE_STOP]
    assert req.max_output_tokens == settings.compliance_max_tokens
    assert req.max_output_tokens < settings.extraction_max_tokens


def test_compliance_message_without_rules():
    assert build_compliance_message([], "doc") == "Policy:\nDocument:\ndoc\n"


def test_wire_payload(settings):
    payload = build_compliance_request([Rule("1", "a")], "b", settings).to_payload()

    assert set(payload) == {
        "model", "messages", "temperature", "max_completion_tokens", "top_p",
        "stream", "stop", "response_format",
    }
    assert payload["stream"] is False
    assert payload["stop"] == ["ERROR"]
    fmt = payload["response_format"]
    assert fmt["type"] == "json_schema"
    assert fmt["json_schema"]["name"] == "response"
    assert fmt["json_schema"]["schema"]["type"] == "object"


def test_rules_schema_is_strict():
    schema = RULES_SCHEMA.render()

    assert schema["required"] == ["rules"]
    items = schema["properties"]["rules"]["items"]
    assert items["type"] == "object"
    assert items["required"] == ["rule_id", "rule_text"]
    assert items["properties"]["rule_id"]["type"] == "string"


def test_verdict_schema_requires_all_four_fields():
    schema = VERDICT_SCHEMA.render()

    assert schema["required"] == [
        "is_compliant", "compliance_percentage", "violations", "is_human_review_required",
    ]
    assert schema["properties"]["compliance_percentage"]["type"] == "integer"
    assert schema["properties"]["compliance_percentage"]["minimum"] == 0
    assert schema["properties"]["compliance_percentage"]["maximum"] == 100
    assert schema["properties"]["violations"]["items"] == {"type": "string"}


def test_schemas_match_payload_models():
    assert set(RULES_SCHEMA.required) == set(ExtractRulesPayload.model_fields)
    assert set(RULE_ITEM_SCHEMA.required) == set(RulePayload.model_fields)
    assert set(VERDICT_SCHEMA.required) == set(VerdictPayload.model_fields)
