from enum import Enum


class Role(str, Enum):
    """Collaboration roles a student can be scored on."""

    LEADER = "LEADER"
    PLANNER = "PLANNER"
    EXPERT = "EXPERT"
    CREATIVE = "CREATIVE"
    COMMUNICATOR = "COMMUNICATOR"
    TEAM_PLAYER = "TEAM_PLAYER"
    CHALLENGER = "CHALLENGER"

    @property
    def display_name(self) -> str:
        return ROLE_DISPLAY_NAMES[self]

    @property
    def description(self) -> str:
        return ROLE_DESCRIPTIONS[self]


ROLE_DISPLAY_NAMES: dict[Role, str] = {
    Role.LEADER: "Leader",
    Role.PLANNER: "Planner",
    Role.EXPERT: "Expert",
    Role.CREATIVE: "Creative",
    Role.COMMUNICATOR: "Communicator",
    Role.TEAM_PLAYER: "Team Player",
    Role.CHALLENGER: "Challenger",
}

ROLE_DESCRIPTIONS: dict[Role, str] = {
    Role.LEADER: "Takes charge and guides the team",
    Role.PLANNER: "Organizes tasks and schedules",
    Role.EXPERT: "Deep subject matter knowledge",
    Role.CREATIVE: "Brings innovative ideas",
    Role.COMMUNICATOR: "Facilitates discussion and clarity",
    Role.TEAM_PLAYER: "Supportive and cooperative",
    Role.CHALLENGER: "Questions assumptions and pushes boundaries",
}

ALL_ROLES: tuple[Role, ...] = tuple(Role)
