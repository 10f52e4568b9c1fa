"""Prompt templates for the classification and extraction model calls."""
from __future__ import annotations

CLASSIFICATION_PROMPT = """Classify this meeting into exactly one category. Respond with ONLY the category name, nothing else.

Categories:
- sales_call: Discusses smart contract audits, security retainers, lifecycle security, pricing, proposals, scope, or timelines with a prospect
- partner_call: Discussion with existing partners, vendors, conferences, or integrations
- internal: Internal team meeting (standup, sprint, 1:1, etc.)
- other: Recruiting, legal, admin, or anything else

{context}
Transcript excerpt:
{excerpt}

Category:"""

EXTRACTION_PROMPT = """You are analyzing a sales call transcript from Sherlock, a smart contract security company. Extract structured data from this transcript.

Sherlock offers:
- Smart contract security audits (one-time code reviews)
- Security retainers (ongoing security relationships)
- Lifecycle security services (architecture review through deployment)

IMPORTANT: Return ONLY valid JSON, no markdown code fences, no explanation.

Extract the following fields:

{
  "call_type": "discovery" | "pitch" | "follow_up" | "closing" | "check_in",
  "offering_pitched": "audit" | "retainer" | "lifecycle" | "none",
  "company_name": "Name of the prospect company/protocol (best guess from context)",
  "prospect_names": [{"name": "Full Name", "role": "Their role/title if mentioned"}],
  "team_members": [{"name": "Full Name", "email": "email@sherlock.xyz if identifiable"}],
  "tech_stack": ["Solidity", "Foundry", etc. - only include if specifically mentioned],
  "call_outcome": "positive" | "negative" | "neutral" | "follow_up_scheduled" | "proposal_sent" | "declined",
  "deal_size": "$X" or null if not mentioned,
  "call_quality_score": 1-10 (10 = very productive sales conversation with clear next steps),
  "quality_rationale": "Brief explanation of the score",
  "objections": [
    {
      "type_key": "budget_timing" | "need_internal_buyin" | "already_have_auditor" | "scope_concerns" | "timeline_too_long" | "not_ready_yet" | "comparing_competitors" | "other",
      "quote": "Exact or near-exact quote from prospect",
      "context": "Brief context around the objection"
    }
  ],
  "prospect_questions": ["Questions the prospect asked"],
  "key_quotes": [
    {
      "speaker": "Speaker name",
      "quote_text": "Notable quote",
      "context": "Why this quote matters"
    }
  ],
  "follow_up_actions": [
    {
      "action_text": "What needs to happen next",
      "assigned_to": "Who is responsible"
    }
  ],
  "counter_responses": [
    {
      "objection_type_key": "Same type_key as the objection being countered",
      "response_text": "How the Sherlock team member responded",
      "outcome": "effective" | "partially_effective" | "ineffective"
    }
  ]
}

Rules:
- If a field has no data, use empty array [] or null as appropriate
- For company_name, infer from context (meeting title, domain names, project names mentioned)
- For team_members, anyone with an @{internal_domain} email or clearly on the Sherlock team
- Only include technologies that are explicitly mentioned in the conversation
- call_quality_score: 1-3 = poor (off-topic, no engagement), 4-6 = average, 7-9 = good (clear progress), 10 = excellent (deal advancing)
- Keep quotes accurate; paraphrase only if exact text isn't clear
- For objection type_key, map to the canonical types. Use "other" only if none fit."""

TRUNCATION_MARKER = "\n\n[Transcript truncated]"


def render_extraction_instructions(internal_domain: str) -> str:
    # The schema block contains literal braces, so substitute instead of str.format
    return EXTRACTION_PROMPT.replace("{internal_domain}", internal_domain)
