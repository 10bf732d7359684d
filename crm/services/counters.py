from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from crm.models import Counter

LEAD_COUNTER = "lead"


async def next_sequence(db: AsyncSession, name: str) -> int:
    """Atomically increment and return the named counter, creating it at 1."""
    stmt = (
        insert(Counter)
        .values(name=name, seq=1)
        .on_conflict_do_update(index_elements=[Counter.name], set_={"seq": Counter.seq + 1})
        .returning(Counter.seq)
    )
    return int((await db.execute(stmt)).scalar_one())


async def next_lead_id(db: AsyncSession) -> str:
    seq = await next_sequence(db, LEAD_COUNTER)
    return f"LEAD-{seq:06d}"
