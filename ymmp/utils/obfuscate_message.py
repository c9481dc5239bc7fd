"""
This module is to be used with loguru to remove potentially sensitive information
such as the user's name or a GitHub token from log messages.
"""

import re

# Classic 40-char hex tokens and the prefixed formats (ghp_, gho_, ghs_, github_pat_...)
_TOKEN_PATTERN = re.compile(
    r"\b(?:[0-9a-f]{40}|gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})\b"
)
_AUTH_HEADER_PATTERN = re.compile(r"(token\s+)[^\s'\"]+", re.IGNORECASE)


def obfuscate_message(
    message: str, anonymize_path: bool = True, mask_tokens: bool = True
) -> str:
    """
    Obfuscate the message such that it does not reveal user information.

    Args:
        message: The message to obfuscate.
        anonymize_path: Whether to anonymize home directory paths in the message.
        mask_tokens: Whether to mask GitHub tokens and Authorization header values.

    Returns:
        The obfuscated message.
    """
    if anonymize_path:
        message = _anonymize_path(message)
    if mask_tokens:
        message = _mask_tokens(message)

    return message


def _anonymize_path(message: str) -> str:
    """
    Anonymize the path in the message such that
    it does not reveal user information such as usernames.

    OS agnostic.
    """
    # Windows - Only remove the username, keep the drive letter
    message = re.sub(r"([A-Z]:\\Users\\)[^\\]+\\", r"\1...\\", message)
    # macOS
    message = re.sub(r"/Users/[^/]+/", r"/Users/.../", message)
    # Linux
    message = re.sub(r"/home/[^/]+/", r"/home/.../", message)

    return message


def _mask_tokens(message: str) -> str:
    message = _TOKEN_PATTERN.sub("***", message)
    return _AUTH_HEADER_PATTERN.sub(r"\1***", message)
