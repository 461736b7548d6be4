"""
Sample roster generator for demos and load tests.

Lays voters out over the same hierarchy the real rolls use: 10 voters per
group, 20 per neighborhood, 25 per voting area, 50 per constituency.
"""

from __future__ import annotations

import math
import random
from datetime import datetime, timedelta
from typing import List, Optional

from ..models import Voter, utc_now


def generate_sample_roster(
    count: int = 100,
    voted_ratio: float = 0.6,
    seed: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[Voter]:
    """
    Build ``count`` synthetic voters with 12-digit identity numbers.

    Roughly ``voted_ratio`` of them are already checked in, with check-in
    times spread over the preceding hours.
    """
    rng = random.Random(seed)
    now = now or utc_now()

    voters = []
    for i in range(count):
        n = i + 1
        has_voted = rng.random() < voted_ratio
        voters.append(Voter(
            id=f"v-{i}",
            full_name=f"Cử tri Mẫu {n}",
            id_card=str(100000000000 + i),
            address=f"Số {n}",
            neighborhood=f"Khu phố {math.ceil(n / 20)}",
            constituency=f"Đơn vị {math.ceil(n / 50)}",
            voting_group=f"Tổ {math.ceil(n / 10)}",
            voting_area=f"Khu vực {math.ceil(n / 25)}",
            has_voted=has_voted,
            voted_at=now - timedelta(minutes=rng.randint(0, 600)) if has_voted else None,
        ))
    return voters
