"""确认提示框模块。"""

from nanopanel.prompt.prompt import (
    CONFIRM_ID,
    REJECT_ID,
    CustomButton,
    Prompt,
    PromptResolveType,
    PromptResult,
    prompt,
)

__all__ = ["CONFIRM_ID", "REJECT_ID", "CustomButton", "Prompt", "PromptResolveType", "PromptResult", "prompt"]
