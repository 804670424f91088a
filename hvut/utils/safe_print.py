"""
Safe printing for terminals that cannot encode Unicode symbols
"""
import sys

STATUS_SYMBOLS = {
    "success": ("✅", "[OK]"),
    "error": ("❌", "[ERROR]"),
    "info": ("🔍", "[INFO]"),
    "report": ("📄", "[REPORT]"),
}


def _can_encode(text, stream):
    encoding = getattr(stream, "encoding", None) or "ascii"
    try:
        text.encode(encoding)
        return True
    except (UnicodeEncodeError, LookupError):
        return False


def safe_print(text, stream=None):
    """Print text, dropping non-ASCII characters the terminal cannot encode"""
    stream = stream or sys.stdout
    try:
        print(text, file=stream)
    except UnicodeEncodeError:
        print(''.join(char for char in text if ord(char) < 128), file=stream)


def safe_format_status(status, text, stream=None):
    """Prefix text with a status symbol, or its ASCII fallback"""
    if status not in STATUS_SYMBOLS:
        return text
    symbol, fallback = STATUS_SYMBOLS[status]
    if _can_encode(symbol, stream or sys.stdout):
        return f"{symbol} {text}"
    return f"{fallback} {text}"
