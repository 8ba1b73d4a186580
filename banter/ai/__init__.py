"""
AI Zone - persona prompts and the text-generation adapter.

Generated text never reaches a conversation unprocessed: replies are cleaned
of stage directions and mapped to a mood before they are stored.
"""

from banter.ai.llm_client import DeepSeekClient
from banter.ai.prompts import ProcessedReply, build_system_prompt, process_reply

__all__ = [
    "DeepSeekClient",
    "ProcessedReply",
    "build_system_prompt",
    "process_reply",
]
