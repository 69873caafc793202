import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from . import db
from .codes import is_valid_code
from .errors import MalformedInput

logger = logging.getLogger(__name__)

# empty (or, in older databases, NULL) generated_date marks a code that
# has not been handed out yet
AVAILABLE = ""


@dataclass(frozen=True)
class UniqueCode:
    code: str
    generated_date: Optional[str] = None

    @property
    def is_available(self) -> bool:
        return not self.generated_date

    @classmethod
    def from_row(cls, row) -> "UniqueCode":
        return cls(code=row["code"], generated_date=row["generated_date"] or None)


@dataclass(frozen=True)
class Allocation:
    """
    Result of one allocation. `codes` may be shorter than `requested`
    when the pool runs low; nothing is raised in that case.
    """

    requested: int
    codes: List[str] = field(default_factory=list)

    @property
    def shortfall(self) -> int:
        return self.requested - len(self.codes)


def _normalize_count(count) -> int:
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        return 0
    return min(count, db.NUM_POSSIBLE_CODES)


def allocate(count: int) -> Allocation:
    """
    Claim up to `count` available codes and mark them used.

    The SELECT and the UPDATE run in one BEGIN IMMEDIATE transaction,
    so two concurrent allocations never claim the same code.
    """
    count = _normalize_count(count)
    if count == 0:
        return Allocation(requested=0)

    now = datetime.now(timezone.utc).isoformat()
    with db.immediate_transaction() as cur:
        cur.execute(
            "SELECT code FROM unique_codes"
            " WHERE COALESCE(generated_date, '') = ? LIMIT ?",
            (AVAILABLE, count),
        )
        codes = [row["code"] for row in cur.fetchall()]
        if codes:
            cur.executemany(
                """
                UPDATE unique_codes
                SET generated_date = ?
                WHERE code = ? AND COALESCE(generated_date, '') = ?
                """,
                [(now, code, AVAILABLE) for code in codes],
            )

    allocation = Allocation(requested=count, codes=codes)
    if allocation.shortfall:
        logger.warning(
            f"Code pool short: requested {count}, allocated {len(codes)}"
        )
    else:
        logger.info(f"Allocated {len(codes)} codes")
    return allocation


def allocate_codes(count: int) -> List[str]:
    """Return the allocated code values; see allocate() for details."""
    return allocate(count).codes


def add_unique_codes(codes: Sequence[str]) -> int:
    """
    Insert `codes` into the pool as available. Returns the number of rows
    written. The whole batch is validated before anything is written.
    """
    if (
        not isinstance(codes, (list, tuple))
        or not codes
        or not all(is_valid_code(c) for c in codes)
    ):
        raise MalformedInput("Input must be an array of 6-digit strings")

    with db.db_cursor() as cur:
        cur.executemany(
            "INSERT INTO unique_codes (code, generated_date) VALUES (?, ?)",
            [(code, AVAILABLE) for code in codes],
        )
        inserted = cur.rowcount
    return inserted


def get_code(code: str) -> Optional[UniqueCode]:
    with db.db_cursor() as cur:
        cur.execute(
            "SELECT code, generated_date FROM unique_codes WHERE code = ? LIMIT 1",
            (code,),
        )
        row = cur.fetchone()
    if row is None:
        return None
    return UniqueCode.from_row(row)


def count_codes() -> int:
    with db.db_cursor() as cur:
        cur.execute("SELECT COUNT(code) AS n FROM unique_codes")
        return cur.fetchone()["n"]


def count_available() -> int:
    with db.db_cursor() as cur:
        cur.execute(
            "SELECT COUNT(code) AS n FROM unique_codes"
            " WHERE COALESCE(generated_date, '') = ?",
            (AVAILABLE,),
        )
        return cur.fetchone()["n"]
