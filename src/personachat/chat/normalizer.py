"""Turn normalization for strict alternating-turn chat APIs.

Hides the mapping between the UI vocabulary (user/assistant) and the
upstream vocabulary (user/model), and the rules that make a free-form
message list acceptable to the generation API.
"""

from collections.abc import Iterable

from ..llm.models import Turn, TurnRole
from ..memory.models import ChatMessage, Role


def to_turn_role(role: Role) -> TurnRole:
    """Map a UI role onto the upstream turn role."""
    return "model" if role == Role.ASSISTANT else "user"


def normalize_history(messages: Iterable[ChatMessage]) -> list[Turn]:
    """Build a valid prior-turn history from the UI message list.

    Rules, in order:
    1. Messages with blank content are dropped.
    2. Roles are mapped to upstream roles.
    3. Leading 'model' turns are dropped, so history starts with 'user'.
    4. A turn with the same role as the previous kept turn is dropped
       (the first of a same-role run wins).
    5. A trailing 'user' turn is dropped; the live message is appended
       separately by the caller.

    Returns:
        Empty, or alternating turns starting with 'user' and ending with 'model'
    """
    turns: list[Turn] = []

    for message in messages:
        if not message.content.strip():
            continue

        role = to_turn_role(message.role)
        if not turns and role == "model":
            continue
        if turns and turns[-1].role == role:
            continue

        turns.append(Turn(role=role, text=message.content))

    if turns and turns[-1].role == "user":
        turns.pop()

    return turns
