import re

EMOJI_CLASS = "\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF\U0001F1E0-\U0001F1FF"

# Applied in order on every pass
CLEANUP_RULES = [
    (re.compile(r"\*+"), ""),                  # bold / italic markers
    (re.compile(r"#{1,6}\s?"), ""),            # headings
    (re.compile(r"-\s"), ""),                  # dash bullets
    (re.compile(r"\d\.\s"), ""),               # numbered lists
    (re.compile(r"`{1,3}"), ""),               # code fences and inline code
    (re.compile(r"\\"), ""),
    (re.compile(r"_\s"), " "),
    (re.compile(r"_"), ""),
    (re.compile(r"--"), ""),
    (re.compile(r"\s-\s"), " "),
    (re.compile(r"\d+\)\s"), ""),              # 1) style lists
    (re.compile(r"[•·◦]\s"), ""),
    (re.compile(r"\s+"), " "),
    (re.compile(f"([^\\s])([{EMOJI_CLASS}])"), r"\1 \2"),
]


def _clean_once(text: str) -> str:
    for pattern, replacement in CLEANUP_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def clean_answer(text: str) -> str:
    """
    Strip markdown and list syntax from a model answer so it reads as plain
    paragraphs. Passes repeat until nothing changes, which makes the result
    stable under another call.
    """
    cleaned = _clean_once(text or "")
    while True:
        again = _clean_once(cleaned)
        if again == cleaned:
            return cleaned
        cleaned = again
