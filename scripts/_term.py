"""
scripts/_term.py — Shared terminal helpers for the maintenance CLIs.
"""


# ── Terminal colours (graceful no-op if not supported) ───────────────────────

class C:
    RESET  = "\033[0m"
    BOLD   = "\033[1m"
    DIM    = "\033[2m"
    GREEN  = "\033[32m"
    YELLOW = "\033[33m"
    RED    = "\033[31m"
    CYAN   = "\033[36m"

def _bold(s):  return f"{C.BOLD}{s}{C.RESET}"
def _dim(s):   return f"{C.DIM}{s}{C.RESET}"
def _green(s): return f"{C.GREEN}{s}{C.RESET}"
def _yellow(s):return f"{C.YELLOW}{s}{C.RESET}"
def _red(s):   return f"{C.RED}{s}{C.RESET}"
def _cyan(s):  return f"{C.CYAN}{s}{C.RESET}"
