"""
truncate.py — Keep a reply within the SMS length limit.
"""

ELLIPSIS = "..."
WORD_BREAK_RATIO = 0.8


def truncate_message(message: str, max_length: int = 150) -> str:
    """
    Return *message* unchanged if it fits, otherwise shorten it to at most
    *max_length* characters ending in "...".

    The cut point is max_length - 3. If the last space before it sits at or
    beyond 80% of the cut point, the message is cut at that space instead so
    the final word isn't split.
    """
    if not message:
        return ""
    if len(message) <= max_length:
        return message
    if max_length <= len(ELLIPSIS):
        return message[:max(max_length, 0)]

    cut_at = max_length - len(ELLIPSIS)
    truncated = message[:cut_at]
    last_space = truncated.rfind(" ")

    if last_space >= 0 and last_space >= cut_at * WORD_BREAK_RATIO:
        head = truncated[:last_space].rstrip()
        if head:
            return head + ELLIPSIS

    return truncated + ELLIPSIS
