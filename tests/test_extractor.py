import json

import pytest

from conftest import FakeResponse, chat_response
from policy_match.errors import ParseError, ProtocolError, TransportError
from policy_match.extractor import RuleExtractor
from policy_match.models import Rule

TWO_RULES = {"rules": [
    {"rule_id": "1", "rule_text": "No smoking indoors."},
    {"rule_id": "2", "rule_text": "ID badges required."},
]}


def test_extracts_rules_in_order(make_gateway, settings):
    gateway, session = make_gateway(chat_response(json.dumps(TWO_RULES)))

    rules = RuleExtractor(gateway, settings).extract_rules(
        "1. No smoking indoors.\n2. ID badges required."
    )

    assert rules == [
        Rule(rule_id="1", rule_text="No smoking indoors."),
        Rule(rule_id="2", rule_text="ID badges required."),
    ]


def test_policy_text_is_normalized_before_sending(make_gateway, settings):
    gateway, session = make_gateway(chat_response(json.dumps(TWO_RULES)))

    RuleExtractor(gateway, settings).extract_rules(
        "  1.  No smoking indoors.  \r\n\r\n\r\n2. ID badges required.\r\n"
    )

    user = session.sent_payload()["messages"][1]["content"]
    assert user == "Policy:\n1. No smoking indoors.\n\n2. ID badges required.\n\n"


def test_empty_extraction_is_success(make_gateway, settings):
    gateway, _ = make_gateway(chat_response('{"rules":[]}'))

    assert RuleExtractor(gateway, settings).extract_rules("Welcome to the handbook.") == []


def test_truncated_payload_is_repaired(make_gateway, settings):
    truncated = json.dumps(TWO_RULES)[:-2]
    gateway, _ = make_gateway(chat_response(truncated))

    rules = RuleExtractor(gateway, settings).extract_rules("policy")

    assert [r.rule_id for r in rules] == ["1", "2"]


def test_unrepairable_payload_is_parse_error(make_gateway, settings):
    gateway, _ = make_gateway(chat_response('{"rules":[{"rule_id":"1","rule_text":"a"},'))

    with pytest.raises(ParseError, match="extract_rules ::"):
        RuleExtractor(gateway, settings).extract_rules("policy")


@pytest.mark.parametrize("content", [
    '{"items":[]}',
    '{"rules":[{"rule_id":"1"}]}',
    '{"rules":"none"}',
    '{"rules":[{"rule_id":1,"rule_text":"a"}]}',
    '{"rules":[{"rule_id":"1","rule_text":null}]}',
    "not json at all",
])
def test_schema_mismatch_is_parse_error(make_gateway, settings, content):
    gateway, _ = make_gateway(chat_response(content))

    with pytest.raises(ParseError):
        RuleExtractor(gateway, settings).extract_rules("policy")


def test_gateway_errors_name_the_operation(make_gateway, settings):
    gateway, _ = make_gateway(FakeResponse(503, text="busy"))

    with pytest.raises(TransportError, match=r"^extract_rules :: call_model_api :: chat API error \[503\]"):
        RuleExtractor(gateway, settings).extract_rules("policy")


def test_protocol_error_propagates(make_gateway, settings):
    gateway, _ = make_gateway(FakeResponse(200, {"choices": []}))

    with pytest.raises(ProtocolError, match="extract_rules ::"):
        RuleExtractor(gateway, settings).extract_rules("policy")
