"""Reading-status vocabulary shared by the interchange and social code.

Stored statuses: in_progress, completed, dnf, to_read ("finished" is an old
alias of completed and is only ever read, never written).
Goodreads shelves: read, currently-reading, to-read.
Followed-book results show the normalized status, or "tbr" for TBR entries.
"""

IN_PROGRESS = "in_progress"
COMPLETED = "completed"
DNF = "dnf"
TO_READ = "to_read"
TBR = "tbr"

STATUSES = (IN_PROGRESS, COMPLETED, DNF, TO_READ)
DNF_TYPES = ("soft", "hard")

STATUS_ALIASES = {"finished": COMPLETED}

SHELF_READ = "read"
SHELF_CURRENTLY_READING = "currently-reading"
SHELF_TO_READ = "to-read"


def normalize_status(raw):
    s = (raw or "").strip().lower()
    if not s:
        return IN_PROGRESS
    return STATUS_ALIASES.get(s, s)

def shelf_for_status(status):
    s = normalize_status(status) if status else None
    if s == COMPLETED:
        return SHELF_READ
    if s == IN_PROGRESS:
        return SHELF_CURRENTLY_READING
    return SHELF_TO_READ

def normalize_shelf(shelf):
    # "to-read", "To Read", "toread" all collapse to "toread"
    return "".join((shelf or "").lower().replace("-", "").split())

def status_for_shelf(shelf):
    s = normalize_shelf(shelf)
    if s == "read":
        return COMPLETED
    if s == "currentlyreading":
        return IN_PROGRESS
    return TO_READ

def is_tbr_shelf(shelf):
    return normalize_shelf(shelf) == "toread"
