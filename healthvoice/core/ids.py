from __future__ import annotations

import uuid


def new_utterance_id() -> str:
    return f"utt_{uuid.uuid4().hex[:12]}"


def new_log_id() -> str:
    return str(uuid.uuid4())
