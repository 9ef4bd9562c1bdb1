from sqlalchemy.orm import InstrumentedAttribute, Session

DEFAULT_PREFIX = "W"
TAX_PREFIX = "T"
EVENT_PREFIX = "TE"


def next_code(db: Session, column: InstrumentedAttribute, prefix: str = DEFAULT_PREFIX, width: int = 3) -> str:
    highest = 0
    for (code,) in db.query(column).filter(column.like(f"{prefix}%")).all():
        suffix = code[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:0{width}d}"
