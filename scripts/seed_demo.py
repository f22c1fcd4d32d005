"""
Load a small demo data set into Redis and rebuild every group profile.

Usage:
    REDIS_URL=redis://localhost:6379/0 python scripts/seed_demo.py
"""

import asyncio
import sys
from pathlib import Path

from loguru import logger

# Add project root to path to import the app package
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from app.models.profile import ProfileStatus, StudentProfile  # noqa: E402
from app.models.roles import ALL_ROLES, Role  # noqa: E402
from app.services.aggregation import aggregation_service  # noqa: E402
from app.services.directory import RedisMembershipDirectory  # noqa: E402
from app.services.profile_store import StudentProfileStore  # noqa: E402
from app.services.recommendation.engine import recommendation_engine  # noqa: E402
from app.services.redis_service import redis_service  # noqa: E402

STUDENTS = {
    "ana": {Role.EXPERT: 0.2, Role.PLANNER: 0.7, Role.TEAM_PLAYER: 0.6},
    "ben": {Role.EXPERT: 0.2, Role.COMMUNICATOR: 0.8, Role.CREATIVE: 0.5},
    "cara": {Role.EXPERT: 0.2, Role.LEADER: 0.7, Role.TEAM_PLAYER: 0.5},
    "dev": {role: 0.5 for role in ALL_ROLES},
    "eli": {Role.EXPERT: 0.95, Role.CHALLENGER: 0.4},
}

GROUPS = {
    "algo-a": ("Algorithms A", ["ana", "ben", "cara"]),
    "algo-b": ("Algorithms B", ["dev"]),
    "algo-c": ("Algorithms C", []),
}


async def seed() -> None:
    directory = RedisMembershipDirectory()
    students = StudentProfileStore()

    for student_id, scores in STUDENTS.items():
        await students.set(StudentProfile(student_id=student_id, scores=scores, status=ProfileStatus.COMPLETED))

    for group_id, (name, members) in GROUPS.items():
        await directory.register_group(group_id, name)
        for student_id in members:
            await directory.add_member(group_id, student_id)

    summary = await aggregation_service.reconcile_all()
    logger.info(f"Seeded {len(STUDENTS)} students and {len(GROUPS)} groups: {dict(summary)}")

    for rec in await recommendation_engine.recommend("eli", list(GROUPS)):
        logger.info(f"eli -> {rec.group_name}: {rec.match_percentage}% ({rec.match_reason})")


async def main() -> None:
    try:
        await seed()
    finally:
        await redis_service.close()


if __name__ == "__main__":
    asyncio.run(main())
