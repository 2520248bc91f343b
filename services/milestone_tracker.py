# services/milestone_tracker.py

from typing import Any, Awaitable, Callable, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from models.notification_schemas import DaySplit
from utils.timezone_utils import parse_time_of_day

class MilestoneKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    date: str
    split_time: str
    target_ml: int

    def as_record(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'date': self.date,
            'split_time': self.split_time,
            'target_ml': self.target_ml,
        }

AlreadyNotified = Callable[[MilestoneKey], Awaitable[bool]]
MarkNotified = Callable[[MilestoneKey], Awaitable[bool]]

async def check_milestones(
    user_id: str,
    splits: List[DaySplit],
    current_ml: int,
    local_now: datetime,
    already_notified: AlreadyNotified,
    mark_notified: MarkNotified
) -> Optional[DaySplit]:
    """
    Return the first split that is reached and not yet celebrated today.

    `local_now` is the user's wall clock. At most one split is claimed per
    call; the claim is the create-if-absent write, so losing a race against
    a concurrent caller counts as already notified.
    """
    today = local_now.date().isoformat()
    now_time = local_now.time()

    for split in splits:
        if now_time < parse_time_of_day(split.time_of_day):
            continue
        if current_ml < split.target_ml:
            continue

        key = MilestoneKey(
            user_id=user_id,
            date=today,
            split_time=split.time_of_day,
            target_ml=split.target_ml
        )
        if await already_notified(key):
            continue

        try:
            created = await mark_notified(key)
        except Exception as e:
            print(f"⚠️ Could not record milestone {split.time_of_day}/{split.target_ml}ml for {user_id}: {e}")
            created = False

        if created:
            print(f"🏆 Milestone reached for {user_id}: {split.label or split.time_of_day} ({split.target_ml}ml)")
            return split

    return None

class MilestoneTracker:
    """Binds check_milestones to the milestone store"""

    def __init__(self, store):
        self.store = store

    async def check(
        self,
        user_id: str,
        splits: List[DaySplit],
        current_ml: int,
        local_now: datetime
    ) -> Optional[DaySplit]:
        async def mark(key: MilestoneKey) -> bool:
            return await self.store.create_milestone_if_absent(key.as_record())

        async def exists(key: MilestoneKey) -> bool:
            return await self.store.milestone_exists(key.as_record())

        return await check_milestones(user_id, splits, current_ml, local_now, exists, mark)
