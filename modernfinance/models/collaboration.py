"""
Collaboration Models

A user contribution to an analysis session is classified into one of five
types; analysts then answer it from a per-(agent, type) response template.
Enum values are the identifiers clients already send and render.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modernfinance.models.market import AgentType


class ContributionType(str, Enum):
    INSIGHT = "insight"
    QUESTION = "question"
    CORRECTION = "correction"
    ADDITIONAL_CONTEXT = "additionalContext"
    COUNTER_ARGUMENT = "counterArgument"

    @classmethod
    def parse(cls, value: "str | ContributionType") -> "ContributionType":
        """Accept a member, a client value ("counterArgument") or a label ("COUNTER_ARGUMENT")."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().replace("_", "").replace(" ", "").lower()
            for member in cls:
                if normalized in (member.value.lower(), member.name.replace("_", "").lower()):
                    return member
        raise ValueError(f"Unknown contribution type: {value!r}")


def _parse_agents(value) -> list[AgentType]:
    """Known agent names in order, duplicates and unknown labels dropped."""
    if not isinstance(value, list):
        raise ValueError("relevantAgents must be a list")
    agents: list[AgentType] = []
    for item in value:
        try:
            agent = AgentType.parse(item)
        except ValueError:
            continue
        if agent not in agents:
            agents.append(agent)
    return agents


class ContributionLabel(BaseModel):
    """
    Raw classification as an LLM returns it.

    ``type`` accepts both "COUNTER_ARGUMENT" and "counterArgument".
    """

    model_config = ConfigDict(populate_by_name=True)

    type: ContributionType
    confidence: float = Field(..., ge=0.0, le=1.0)
    relevant_agents: list[AgentType] = Field(default_factory=list, alias="relevantAgents")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return ContributionType.parse(v)

    @field_validator("relevant_agents", mode="before")
    @classmethod
    def normalize_agents(cls, v):
        return _parse_agents(v)


class ContributionClassification(BaseModel):
    type: ContributionType
    relevant_agents: list[AgentType]
    confidence: float = Field(..., ge=0.0, le=1.0)
    suggested_integration: str
    source: str = Field(..., description="Provider that classified the contribution, or 'synthetic'")


class AgentRelevance(BaseModel):
    agent_type: AgentType
    relevance_score: float = Field(..., ge=0.0, le=1.0)
    reason: str


class AgentResponseTemplate(BaseModel):
    """How one analyst acknowledges and folds in a contribution."""

    agent_id: str
    agent_type: AgentType
    acknowledgment: str
    integration: str
    updated_key_points: list[str]
    new_evidence: list[str]
    impact_on_analysis: str
    confidence_change: float = Field(..., ge=-1.0, le=1.0)
    related_questions: list[str]
    additional_considerations: list[str]
