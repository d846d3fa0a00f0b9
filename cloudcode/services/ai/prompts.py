"""
System prompts and user-message construction for the code assistant.
"""

from typing import Dict, Literal, Optional

AIAction = Literal["explain", "fix", "generate", "refactor"]

SYSTEM_PROMPTS: Dict[str, str] = {
    "explain": """You are a helpful coding assistant. Explain the provided code in a clear and concise way.
- Break down complex logic step by step
- Mention the purpose and functionality
- Point out any important patterns or techniques used
- Keep explanations beginner-friendly but technically accurate""",

    "fix": """You are an expert code debugger. Analyze the provided code and fix any bugs or issues.
- Identify the problem(s)
- Explain what was wrong
- Provide the corrected code
- Format your response with the explanation first, then the fixed code in a code block""",

    "generate": """You are an expert programmer. Generate code based on the user's request.
- Write clean, well-commented code
- Follow best practices for the language
- Include error handling where appropriate
- Provide the code in a properly formatted code block""",

    "refactor": """You are a senior software engineer. Refactor the provided code to improve its quality.
- Improve readability and maintainability
- Apply best practices and design patterns
- Optimize performance where possible
- Explain the changes you made
- Provide the refactored code in a code block""",
}


def _fenced(code: str) -> str:
    return f"```\n{code}\n```"


def build_user_message(
    action: str,
    code: str = "",
    context: Optional[str] = None,
    prompt: Optional[str] = None,
    language: Optional[str] = None,
) -> str:
    """Compose the user turn for an action."""
    subject = language or "code"

    if action == "explain":
        return f"Please explain this {subject}:\n\n{_fenced(code)}"

    if action == "fix":
        message = f"Please fix any bugs in this {subject}:\n\n{_fenced(code)}"
        if prompt:
            message += f"\n\nAdditional context: {prompt}"
        return message

    if action == "generate":
        message = prompt or "Generate a code snippet"
        if context:
            message += f"\n\nContext/existing code:\n{_fenced(context)}"
        return message

    if action == "refactor":
        message = f"Please refactor this {subject}:\n\n{_fenced(code)}"
        if prompt:
            message += f"\n\nSpecific improvements requested: {prompt}"
        return message

    raise ValueError(f"Unknown AI action: {action}")
