import os
import shutil
import sys
import time

import colorama

colorama.just_fix_windows_console()

#---------------------------- Color ----------------------------

IS_PYCHARM   = os.environ.get("PYCHARM_HOSTED") == "1"
# In PyCharm, force colors on. Else allow override via FORCE_COLOR=1
FORCE_COLOR  = IS_PYCHARM or os.environ.get("FORCE_COLOR", "").lower() in ("1", "true", "yes", "on")
USE_COLOR    = sys.stdout.isatty() or FORCE_COLOR

class C:
    reset   = "\x1b[0m"      if USE_COLOR else ""
    bold    = "\x1b[1m"      if USE_COLOR else ""
    dim     = "\x1b[2m"      if USE_COLOR else ""
    red     = "\x1b[31m"     if USE_COLOR else ""
    green   = "\x1b[32m"     if USE_COLOR else ""
    yellow  = "\x1b[33m"     if USE_COLOR else ""
    blue    = "\x1b[34m"     if USE_COLOR else ""
    magenta = "\x1b[35m"     if USE_COLOR else ""
    cyan    = "\x1b[36m"     if USE_COLOR else ""


DEBUG = False

def set_debug(on: bool) -> None:
    global DEBUG
    DEBUG = bool(on)

def banner(tag: str, msg: str, color: str, file=None) -> None:
    # the live panel gets redrawn below this line on its next update
    _detach_panel()
    print(f"{color}[{tag}]{C.reset} {msg}", file=file or sys.stdout, flush=True)

def debug(msg: str) -> None:
    if DEBUG:
        banner("DEBUG", msg, C.dim, file=sys.stderr)

# -------------------------- Metrics ---------------------------------------

class Meter:
    __slots__ = ("val", "t0")
    def __init__(self):
        self.val = 0
        self.t0 = time.time()
    def add(self, n=1):
        self.val += n
    def rate(self):
        dt = max(1e-6, time.time() - self.t0)
        return self.val / dt

# --- simple multi-line status panel ---

_status_lines: list[str] = []
_prev_lines = 0
_prev_len = 0

def _single_line() -> bool:
    if os.environ.get("STATUS_SINGLELINE", "").lower() in ("1", "true", "yes", "on"):
        return True
    return not sys.stdout.isatty() and not FORCE_COLOR

def status_stack(lines: list[str]):
    """
    Render a live status panel.
    - Not a TTY (or STATUS_SINGLELINE=1): single-line '\\r' refresh.
    - Real TTY with ANSI: N-line panel (cursor up + clear), no scrolling.
    """
    global _prev_lines, _prev_len
    if not lines:
        return

    if _single_line():
        line = "  |  ".join(s.strip() for s in lines)
        width = shutil.get_terminal_size((120, 20)).columns
        if len(line) >= width:
            line = line[:max(0, width - 1)]
        pad = " " * max(0, _prev_len - len(line))
        sys.stdout.write("\r" + line + pad)
        sys.stdout.flush()
        _prev_len = len(line)
        return

    n = len(lines)
    if _prev_lines == 0:
        sys.stdout.write("\n" * (n - 1))
    elif n > _prev_lines:
        sys.stdout.write("\n" * (n - _prev_lines))
    _prev_lines = max(_prev_lines, n)

    if _prev_lines > 1:
        sys.stdout.write(f"\x1b[{_prev_lines - 1}F")
    for i in range(_prev_lines):
        sys.stdout.write("\x1b[2K\x1b[0G")  # clear line, column 0
        if i < n:
            sys.stdout.write(lines[i])
        if i < _prev_lines - 1:
            sys.stdout.write("\n")
    sys.stdout.flush()

def status_panel_init(n: int):
    """Allocate an n-line status panel."""
    global _status_lines
    _status_lines = [""] * n
    status_stack(_status_lines)

def status_set(i: int, text: str):
    """Update line i and redraw the panel."""
    if 0 <= i < len(_status_lines):
        _status_lines[i] = text
        status_stack(_status_lines)

def _detach_panel():
    global _prev_lines, _prev_len
    if _prev_lines or _prev_len:
        sys.stdout.write("\n")
        sys.stdout.flush()
    _prev_lines = 0
    _prev_len = 0

def status_done():
    """Leave the panel on screen and move below it."""
    global _status_lines
    _detach_panel()
    _status_lines = []
