from __future__ import annotations


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    text = str(detail or "").strip()
    if not text:
        return "Unknown runtime error."
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    if not lines:
        return "Unknown runtime error."
    for ln in reversed(lines):
        if ln.startswith("File "):
            continue
        if ln.startswith("^"):
            continue
        if ln.startswith("Traceback "):
            continue
        out = ln
        break
    else:
        out = lines[-1]
    if len(out) > max_len:
        return out[: max_len - 3].rstrip() + "..."
    return out


def hint_for_exception(summary: str) -> str:
    s = str(summary or "").lower()
    if "missingtimestampserror" in s or "no word timestamps" in s:
        return "The recognizer must send word timestamps with every result."
    if "schedulerinvarianterror" in s or "no words after cutoff" in s:
        return "Pacing scheduler hit an internal inconsistency. Please report it with the log file."
    if "no module named" in s:
        return "A required package is missing in this virtualenv. Reinstall dependencies and retry."
    if "config file not found" in s:
        return "Configured JSON file is missing. Update the config path or restore the file."
    if "invalid json" in s or "expected a json object" in s:
        return "The replay file must hold one JSON result object per line."
    if "no such file or directory" in s:
        return "Input file not found. Check the path and retry."
    return "Check logs for full traceback."
