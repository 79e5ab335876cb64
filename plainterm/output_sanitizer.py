# --- API DOCUMENTATION for plainterm/output_sanitizer.py ---
#
# **Purpose:** Cleans one chunk of raw shell output for display. The embedded
# shell is not a terminal emulator, so any control sequence that survives is
# unrecoverable noise; this module strips the known ones and formats what is
# left as a transcript block.
#
# **Public Functions:**
#
# def sanitize_output(text_content: str, marker: str = DEFAULT_OUTPUT_MARKER) -> str:
#     """
#     Strips noise from a chunk and prefixes every remaining line with `marker`.
#
#     Args:
#         text_content (str): One decoded output chunk. Not necessarily line aligned.
#         marker (str): Prefix for every displayed line.
#
#     Returns:
#         str: The formatted block ending in exactly one newline, or "" when the
#              chunk contained nothing but noise.
#     """
#
# def strip_noise(text_content: str) -> str:
#     """Applies NOISE_RULES in order and trims the result. No formatting."""
#
# **Key Global Constants/Variables:**
#   NOISE_RULES: ordered tuple of (name, compiled pattern, replacement).
#   DEFAULT_OUTPUT_MARKER: "> "
#
# --- END API DOCUMENTATION ---

import re
import logging

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_MARKER = "> "

# Private mode numbers the shell toggles around each prompt: cursor keys (1),
# cursor show/hide (25), alt screen (47, 1049), mouse reporting (1000-1006, 1015),
# meta key (1034), bracketed paste (2004). Focus tracking is 1004.
_MODE_NUMBERS = r'(?:1049|1034|2004|1000|1002|1003|1004|1005|1006|1015|47|25|1)'

# Rules run in this order, one after the other. The line-anchored rules come
# first and the generic escape rules last, so a generic rule never eats the
# text a narrower rule is looking for. Do not merge them into one pattern.
NOISE_RULES = (
    # CRLF -> LF, otherwise '$' never matches on pipe output from some shells.
    ("line-endings", re.compile(r'\r+\n'), "\n"),
    # zsh prints a lone '%' to mark a partial line.
    ("separator-lines", re.compile(r'^%+[ \t]*$\n?', re.MULTILINE), ""),
    ("term-not-set", re.compile(r'^TERM environment variable not set\.?[ \t]*$\n?', re.MULTILINE), ""),
    # ESC [ row ; col H. The ESC-less form needs both numbers to count.
    ("cursor-position", re.compile(r'\x1B\[\d*(?:;\d*)?[Hf]|\[\d+;\d+[Hf]'), ""),
    # Mode toggles, with or without the ESC byte (some pipes drop it).
    ("mode-toggle", re.compile(r'\x1B?\[\?' + _MODE_NUMBERS + r'[hl]'), ""),
    # Operating system commands, e.g. window title: ESC ] ... BEL or ESC ] ... ESC \
    ("osc", re.compile(r'\x1B\][^\x07\x1B]*(?:\x07|\x1B\\)'), ""),
    ("csi", re.compile(r'\x1B\[[0-?]*[ -/]*[@-~]'), ""),
    # Anything else introduced by ESC: charset selection, keypad modes, a lone ESC.
    ("escape", re.compile(r'\x1B[()#%*+]?[\x20-\x7E]?'), ""),
    # Stray control characters. Tab and newline are kept.
    ("control-chars", re.compile(r'[\x00-\x08\x0B-\x1F\x7F]'), ""),
)


def strip_noise(text_content: str) -> str:
    """Applies NOISE_RULES to a chunk and trims the result."""
    if not text_content:
        return ""

    cleaned = text_content.strip()
    for name, pattern, replacement in NOISE_RULES:
        cleaned, count = pattern.subn(replacement, cleaned)
        if count:
            logger.debug(f"strip_noise: rule '{name}' removed {count} match(es).")
    return cleaned.strip()


def sanitize_output(text_content: str, marker: str = DEFAULT_OUTPUT_MARKER) -> str:
    """Turns a raw output chunk into a transcript block.

    Args:
        text_content: One decoded chunk of shell output.
        marker: Prefix written in front of every line.

    Returns:
        The block with every line prefixed and exactly one trailing newline,
        or an empty string when nothing but noise was received. Callers must
        not emit anything for an empty result.
    """
    cleaned = strip_noise(text_content)
    if not cleaned:
        if text_content and text_content.strip():
            logger.debug(f"sanitize_output: chunk was pure noise: {text_content[:80]!r}")
        return ""

    return "".join(f"{marker}{line}\n" for line in cleaned.split("\n"))
