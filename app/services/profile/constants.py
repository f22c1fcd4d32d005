from typing import Final

from app.models.roles import Role

# Ideal team mix: the average score a well-balanced group should reach per role.
# Every target stays at or below the neutral group score (0.5), so a group that
# sits at 0.5 everywhere has no gaps left to fill.
ROLE_TARGET_MIX: Final[dict[Role, float]] = {
    Role.LEADER: 0.35,
    Role.PLANNER: 0.40,
    Role.EXPERT: 0.45,
    Role.CREATIVE: 0.40,
    Role.COMMUNICATOR: 0.50,  # Discussion carries most study sessions
    Role.TEAM_PLAYER: 0.50,
    Role.CHALLENGER: 0.30,  # A little goes a long way
}

# Importance of filling a gap for each role when summing contributions
ROLE_IMPORTANCE: Final[dict[Role, float]] = {
    Role.LEADER: 1.0,
    Role.PLANNER: 0.9,
    Role.EXPERT: 1.2,
    Role.CREATIVE: 0.8,
    Role.COMMUNICATOR: 1.0,
    Role.TEAM_PLAYER: 1.0,
    Role.CHALLENGER: 0.7,
}

# Role used when several roles share the top score
DOMINANT_ROLE_TIEBREAK: Final[Role] = Role.TEAM_PLAYER

# Roles named in a match reason
MATCH_REASON_MAX_ROLES: Final[int] = 2

# Contributions below this are treated as zero when explaining a score
CONTRIBUTION_EPSILON: Final[float] = 1e-9
