"""
Redis key layout. Keep these simple and documented.
"""

from app.core.config import settings

_PREFIX = settings.REDIS_KEY_PREFIX

# JSON-encoded StudentProfile, written by the assessment workflow
STUDENT_PROFILE_KEY: str = _PREFIX + "profile:student:{student_id}"
# JSON-encoded GroupProfile, written only by the aggregation service
GROUP_PROFILE_KEY: str = _PREFIX + "profile:group:{group_id}"

# Hash of group_id -> display name; membership in the hash means the group exists
GROUP_NAMES_KEY: str = _PREFIX + "groups"
# Set of student ids currently in a group
GROUP_MEMBERS_KEY: str = _PREFIX + "group:{group_id}:members"
# Set of group ids a student currently belongs to
STUDENT_GROUPS_KEY: str = _PREFIX + "student:{student_id}:groups"

NEW_GROUP_REASON: str = "New group - be a founding member!"
NO_GAP_REASON: str = "This group already covers your strengths."
MEMBER_REASON: str = "You are a member of this group"
