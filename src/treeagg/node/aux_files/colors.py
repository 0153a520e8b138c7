# colors.py
# ANSI color codes for terminal output

DEBUG = False


class Colors:
    """ANSI color codes for terminal output"""
    # Regular colors
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'
    WHITE = '\033[37m'

    # Bright/Bold colors
    BRIGHT_RED = '\033[91m'
    BRIGHT_GREEN = '\033[92m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_MAGENTA = '\033[95m'
    BRIGHT_CYAN = '\033[96m'

    # Styles
    BOLD = '\033[1m'
    DIM = '\033[2m'

    # Reset
    RESET = '\033[0m'

    @staticmethod
    def color(text, color_code):
        """Wrap text with color code"""
        return f"{color_code}{text}{Colors.RESET}"


def set_debug(enabled):
    """Turns the debug output on or off for the whole process."""
    global DEBUG
    DEBUG = bool(enabled)


def debug_enabled():
    return DEBUG


# Convenience functions for common message types
def topology_log(text):
    """Color for TOPOLOGY messages (generator, tree views)"""
    return Colors.color(text, Colors.CYAN)

def bootstrap_log(text):
    """Color for BOOTSTRAP protocol messages (requests, replies)"""
    return Colors.color(text, Colors.BRIGHT_CYAN)

def aggregation_log(text):
    """Color for AGGREGATION messages (convergecast, broadcast)"""
    return Colors.color(text, Colors.BRIGHT_GREEN)

def result_log(text):
    """Color for final results"""
    return Colors.color(text, Colors.BOLD + Colors.BRIGHT_MAGENTA)

def error_log(text):
    """Color for ERROR messages"""
    return Colors.color(text, Colors.BRIGHT_RED)

def warning_log(text):
    """Color for WARNING messages"""
    return Colors.color(text, Colors.BRIGHT_YELLOW)

def debug_log(text):
    """Color for DEBUG messages (guard the print with debug_enabled())"""
    return Colors.color(text, Colors.DIM + Colors.WHITE)
