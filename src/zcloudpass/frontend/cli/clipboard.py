"""Clipboard utilities for the CLI frontend.

Uses pyperclip for cross-platform clipboard access.
"""

from __future__ import annotations

import pyperclip


def copy_secret(text: str) -> bool:
    """Copy a secret to the system clipboard.

    Returns False when no clipboard mechanism is available instead of raising,
    so the caller can tell the user to copy by other means.
    """
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException:
        return False
    return True
