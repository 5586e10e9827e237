"""Context assembly for the chat completions call."""

from src.config import DEFAULT_SYSTEM_PROMPT


def build_messages(
    history: list[dict[str, str]],
    user_message: str,
    system_prompt: str = DEFAULT_SYSTEM_PROMPT,
) -> list[dict[str, str]]:
    """Return ``[system] + history + [new user message]``.

    No trimming happens here; the session store already bounds ``history``
    and the new message is always included.
    """
    return [
        {"role": "system", "content": system_prompt},
        *({"role": m["role"], "content": m["content"]} for m in history),
        {"role": "user", "content": user_message},
    ]
