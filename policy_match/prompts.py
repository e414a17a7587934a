"""Centralized prompts for rule extraction and compliance checks.

All LLM prompts live here so they can be reviewed and tuned in one place.
Each task has one fixed system prompt; only the user message varies.
"""

from typing import Sequence

from .config import Settings
from .models import Message, ModelRequest, Rule
from .schema import RULES_SCHEMA, VERDICT_SCHEMA

EXTRACTION_STOP = "___END___"
COMPLIANCE_STOP = "ERROR"


# ---------------------------------------------------------------------------
# Rule extraction
# ---------------------------------------------------------------------------

def build_rule_extraction_request(policy_text: str, settings: Settings) -> ModelRequest:
    """Build the schema-constrained request that turns a policy into rules."""
    return ModelRequest(
        messages=[
            Message(role="system", content=EXTRACT_RULES_SYSTEM_PROMPT),
            Message(role="user", content=build_policy_message(policy_text)),
        ],
        model_id=settings.llm_model,
        output_schema=RULES_SCHEMA.render(),
        max_output_tokens=settings.extraction_max_tokens,
        stop_sequences=[EXTRACTION_STOP],
    )


def build_policy_message(policy_text: str) -> str:
    return f"{POLICY_MARKER}\n{policy_text}\n"


# ---------------------------------------------------------------------------
# Compliance check
# ---------------------------------------------------------------------------

def build_compliance_request(
    rules: Sequence[Rule], document_text: str, settings: Settings,
) -> ModelRequest:
    """Build the schema-constrained request that judges a document."""
    return ModelRequest(
        messages=[
            Message(role="system", content=COMPLIANCE_SYSTEM_PROMPT),
            Message(role="user", content=build_compliance_message(rules, document_text)),
        ],
        model_id=settings.llm_model,
        output_schema=VERDICT_SCHEMA.render(),
        max_output_tokens=settings.compliance_max_tokens,
        stop_sequences=[COMPLIANCE_STOP],
    )


def build_compliance_message(rules: Sequence[Rule], document_text: str) -> str:
    """One rule per line under Policy:, then the document under Document:."""
    lines = [POLICY_MARKER]
    lines.extend(f"- {r.rule_text}" for r in rules)
    lines.append(DOCUMENT_MARKER)
    lines.append(document_text)
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Prompt Components
# ---------------------------------------------------------------------------

POLICY_MARKER = "Policy:"
DOCUMENT_MARKER = "Document:"

EXTRACT_RULES_SYSTEM_PROMPT = """You are PolicyMatch's rule-extraction engine.
Input comes exactly as:

Policy:
<full policy text>

Your task:
- Identify each numbered clause or bullet as a "rule".
- Extract its identifier and full wording.
- Normalize spacing, preserve numbering, drop boilerplate.

IMPORTANT:
- Your output is constrained by a JSON schema: an object with a "rules" array
  whose items each have "rule_id" and "rule_text".
- Keep the rules in the order they appear in the policy.
- If the policy has no numbered clauses or bullets, return an empty "rules" array."""

COMPLIANCE_SYSTEM_PROMPT = """You are PolicyMatch's analysis engine. You will receive input in the following exact format:

Policy:
- <rule text>
- <rule text>
Document:
<full document text>

Your task is to compare the Document against the Policy and output four fields:
- is_compliant              (boolean)
- compliance_percentage     (number between 0 and 100)
- violations                (array of strings; each violated rule)
- is_human_review_required  (boolean; true when your judgement is uncertain)

The system will enforce the JSON schema for your response, so focus solely on accurately assessing compliance and identifying violations."""
