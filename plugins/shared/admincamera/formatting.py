
MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE

# Squad cuts AdminWarn text that goes much past this
DEFAULT_WARN_LENGTH = 200

TEMPLATE_FIELDS = ("admin", "count", "duration")

def FormatDuration(ms) -> str:
    if not ms or ms < 0:
        return "0s"
    ms = int(ms)
    hours = ms // MS_PER_HOUR
    minutes = (ms % MS_PER_HOUR) // MS_PER_MINUTE
    seconds = (ms % MS_PER_MINUTE) // MS_PER_SECOND
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    elif minutes > 0:
        return f"{minutes}m {seconds}s"
    else:
        return f"{seconds}s"

def FormatTemplate(template : str, admin = None, count = None, duration = None) -> str:
    """Substitutes {admin}, {count} and {duration}; fields left as None keep their placeholder."""
    values = {"admin" : admin, "count" : count, "duration" : duration}
    result = template
    for field in TEMPLATE_FIELDS:
        if values[field] != None:
            result = result.replace("{" + field + "}", str(values[field]))
    return result

def SplitMessage(message : str, maxLength : int = DEFAULT_WARN_LENGTH) -> list[str]:
    """
    Breaks a multi-line text into chunks no longer than maxLength.
    Lines are kept whole where possible, a line that is too long by itself
    is broken on spaces, and a single word longer than maxLength is cut.
    """
    if len(message) <= maxLength:
        return [message]

    chunks = []
    current = ""

    def flush():
        nonlocal current
        if current.strip():
            chunks.append(current.strip())
        current = ""

    for line in message.split("\n"):
        candidate = line if current == "" else current + "\n" + line
        if len(candidate) <= maxLength:
            current = candidate
            continue
        flush()
        if len(line) <= maxLength:
            current = line
            continue
        for word in line.split(" "):
            while len(word) > maxLength:
                flush()
                chunks.append(word[:maxLength])
                word = word[maxLength:]
            candidate = word if current == "" else current + " " + word
            if len(candidate) <= maxLength:
                current = candidate
            else:
                flush()
                current = word
    flush()
    return chunks
