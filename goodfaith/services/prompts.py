"""Oracle Prompts — task prompts for judging, analysis, stage checks, generation and feedback.

Invariants:
    - Judging prompts demand a final "Conclusion: YES" / "Conclusion: NO" line
    - Analysis prompts demand a single JSON object keyed by the declared framework ids
    - Stage checks demand a final "Verdict: YES" / "Verdict: NO" line
    - User text is quoted verbatim; prompts never paraphrase answers

Design Decisions:
    - Plain str.format templates (LLM prompts, not SQL — B608 false positives suppressed)
    - Every builder is pure so prompts are covered by ordinary unit tests
"""

import json
from collections.abc import Sequence

from goodfaith.core.candidates import AnsweredPair
from goodfaith.core.graph_model import Framework, Stage

_JUDGE_TEMPLATE = """<role>
You are analyzing potential contradictions in a person's moral reasoning.
</role>

Question 1: "{question_a}"
Answer 1: "{answer_a}"

Question 2: "{question_b}"
Answer 2: "{answer_b}"

<rules>
1. Decide whether there is a genuine contradiction in moral reasoning between the answers.
2. If there is no contradiction, explain briefly why the answers are consistent.
3. If there is a contradiction, explain the specific inconsistency.
4. Be brief and objective. Focus on the logic, not on judging the person's views.
</rules>

End your reply with exactly one line: "Conclusion: YES" or "Conclusion: NO"."""

_ANALYSIS_TEMPLATE = """<role>
You are analyzing a person's moral framework based on their answers to ethical questions.
</role>

<answers>
{answers}
</answers>

The person has encountered {total_contradictions} contradictions in their reasoning and
has resolved {resolved_contradictions} of them.

<task>
1. Break down their alignment with these frameworks as percentages: {framework_list}
2. List 3-5 key moral principles that appear most important to this person
3. Give a consistency score from 0-100 for the coherence of their reasoning
4. Optionally list meta-principles and subtle patterns you notice
</task>

<output_format>
Return ONLY a JSON object. No markdown, no explanation, no preamble.
{schema}
</output_format>"""

_STAGE_CHECK_TEMPLATE = """<role>
You are assessing moral reasoning against Kohlberg's stages of moral development.
</role>

Stage {number}: {name}
Description: {description}
Characteristic reasoning: {reasoning}

<answers>
{answers}
</answers>

Do these answers, taken together, demonstrate reasoning characteristic of this stage?
Explain in two or three sentences, then end with exactly one line:
"Verdict: YES" or "Verdict: NO"."""

_QUESTION_TEMPLATE = """You are generating a question for a moral reasoning test based on Kohlberg's
stages of moral development.

The person is currently at Stage {number} ({name}) in Kohlberg's model.
{context}
Create a thoughtful, accessible moral question that:
1. Uses everyday language (no philosophical jargon)
2. Is appropriate for Stage {number} of Kohlberg's model
3. Might reveal inconsistencies with their previous answers if appropriate
4. Invites reflection and requires moral reasoning

Respond with ONLY the question text, no explanations or other content."""

_FEEDBACK_TEMPLATE = """You are analyzing the moral reasoning of a person who has completed a moral
framework questionnaire.

Based on their answers, they align most strongly with {framework_name} ({framework_pct}% alignment).
Their key moral principles appear to be: {principles}.
Their moral reasoning consistency score is {score}/100.
They have reached Stage {stage_number} ({stage_name}) in Kohlberg's stages of moral development.
They encountered {total_contradictions} contradictions in their reasoning and resolved {resolved_contradictions} of them.

Please provide a brief (200-300 words), thoughtful, encouraging analysis of their moral framework that:
1. Acknowledges their strengths and consistencies
2. Gently identifies areas where they might reflect further
3. Offers insights about their moral development journey
4. Provides guidance on how they might continue to develop their moral reasoning

Be supportive, not judgmental. Focus on growth rather than evaluation. Avoid philosophical
jargon and use clear, accessible language."""


def _format_pairs(pairs: Sequence[AnsweredPair]) -> str:
    return "\n\n".join(
        f'Question {i}: "{p.question.text}"\nAnswer {i}: "{p.answer.text}"'
        for i, p in enumerate(pairs, start=1)
    )


def build_judge_prompt(current: AnsweredPair, prior: AnsweredPair) -> str:
    return _JUDGE_TEMPLATE.format(  # nosec B608
        question_a=prior.question.text,
        answer_a=prior.answer.text,
        question_b=current.question.text,
        answer_b=current.answer.text,
    )


def build_analysis_prompt(
    pairs: Sequence[AnsweredPair],
    frameworks: Sequence[Framework],
    total_contradictions: int,
    resolved_contradictions: int,
) -> str:
    schema = {
        "frameworkAlignment": {f.id: 0 for f in frameworks},
        "keyPrinciples": [],
        "consistencyScore": 0,
        "metaPrinciples": [],
        "subtlePatterns": [],
    }
    return _ANALYSIS_TEMPLATE.format(  # nosec B608
        answers=_format_pairs(pairs),
        total_contradictions=total_contradictions,
        resolved_contradictions=resolved_contradictions,
        framework_list=", ".join(f"{f.id} ({f.name})" for f in frameworks),
        schema=json.dumps(schema, indent=2),
    )


def build_stage_check_prompt(stage: Stage, pairs: Sequence[AnsweredPair]) -> str:
    return _STAGE_CHECK_TEMPLATE.format(  # nosec B608
        number=stage.number,
        name=stage.name,
        description=stage.description,
        reasoning=stage.reasoning,
        answers=_format_pairs(pairs),
    )


def build_question_prompt(stage: Stage, recent: Sequence[AnsweredPair]) -> str:
    context = ""
    if recent:
        context = f"\nHere are their previous answers:\n\n{_format_pairs(recent)}\n"
    return _QUESTION_TEMPLATE.format(  # nosec B608
        number=stage.number, name=stage.name, context=context,
    )


def build_feedback_prompt(
    *,
    framework_name: str,
    framework_pct: int,
    key_principles: Sequence[str],
    score: int,
    stage_number: int,
    stage_name: str,
    total_contradictions: int,
    resolved_contradictions: int,
) -> str:
    return _FEEDBACK_TEMPLATE.format(  # nosec B608
        framework_name=framework_name,
        framework_pct=framework_pct,
        principles=", ".join(key_principles) or "not yet clear",
        score=score,
        stage_number=stage_number,
        stage_name=stage_name,
        total_contradictions=total_contradictions,
        resolved_contradictions=resolved_contradictions,
    )

