"""
Question/answer layout of AI tutor records.

New records carry separate ``question`` and ``answer`` fields; ``content``
keeps the legacy ``Q: <question>\\n\\nA: <answer>`` string so older readers
and exports keep working.
"""
from typing import Any, Dict, List, Tuple

from schoolhub.common.constants import ANSWER_SEPARATOR, LEGACY_QUESTION_PLACEHOLDER, QUESTION_PREFIX


def format_exchange(question: str, answer: str) -> str:
    # a separator inside the question would move the split point on read
    safe_question = question
    while ANSWER_SEPARATOR in safe_question:
        safe_question = safe_question.replace(ANSWER_SEPARATOR, ANSWER_SEPARATOR[1:])
    return f"{QUESTION_PREFIX}{safe_question}{ANSWER_SEPARATOR}{answer}"


def parse_exchange(content: str) -> Tuple[str, str]:
    if ANSWER_SEPARATOR not in content:
        return LEGACY_QUESTION_PLACEHOLDER, content
    question_part, answer = content.split(ANSWER_SEPARATOR, 1)
    if question_part.startswith(QUESTION_PREFIX):
        question_part = question_part[len(QUESTION_PREFIX):]
    return question_part, answer


def read_exchange(record: Dict[str, Any]) -> Tuple[str, str]:
    """Question and answer of a stored record, legacy content as a fallback"""
    if record.get("question") is not None and record.get("answer") is not None:
        return record["question"], record["answer"]
    return parse_exchange(record.get("content", ""))


def build_turns(records: List[Dict[str, Any]], question: str) -> List[Dict[str, str]]:
    """Alternating user/assistant turns from oldest-first records plus the new question"""
    turns = []
    for record in records:
        past_question, past_answer = read_exchange(record)
        turns.append({"role": "user", "content": past_question})
        turns.append({"role": "assistant", "content": past_answer})
    turns.append({"role": "user", "content": question})
    return turns
