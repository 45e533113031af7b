"""
Skill, Profile and Session Schema Definitions using Pydantic

These are the typed records the enforcement core consumes. Skill and
profile definitions come from YAML; session state is persisted as JSON.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class EnforcementTier(str, Enum):
    """How strongly a skill's deny rules are applied."""
    HARD = "hard"
    SOFT = "soft"
    NONE = "none"


class Strictness(str, Enum):
    """Profile strictness, recorded on the session."""
    STRICT = "strict"
    ADVISORY = "advisory"
    PERMISSIVE = "permissive"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CostLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EvidenceType(str, Enum):
    """How a capability was shown to be satisfied."""
    FILE_EXISTS = "file_exists"
    MARKER_FOUND = "marker_found"
    COMMAND_SUCCESS = "command_success"
    MANUAL = "manual"


RISK_ORDER = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2, RiskLevel.CRITICAL: 3}
COST_ORDER = {CostLevel.LOW: 0, CostLevel.MEDIUM: 1, CostLevel.HIGH: 2}


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# Skill definitions (skills.yaml)
# ============================================================================

class DenyRule(BaseModel):
    """An intent stays blocked until a capability is satisfied."""
    until: str
    reason: str

    @field_validator('until', 'reason')
    @classmethod
    def must_not_be_blank(cls, v):
        if not v.strip():
            raise ValueError('must not be empty')
        return v


class ToolPolicy(BaseModel):
    deny_until: dict[str, DenyRule] = Field(default_factory=dict)


class SkillSpec(BaseModel):
    """A skill that provides capabilities and may block intents."""
    name: str
    skill_path: Optional[str] = None
    description: Optional[str] = None
    provides: list[str] = Field(default_factory=list)
    requires: list[str] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)
    risk: RiskLevel = RiskLevel.MEDIUM
    cost: CostLevel = CostLevel.MEDIUM
    tier: Optional[EnforcementTier] = None
    tool_policy: ToolPolicy = Field(default_factory=ToolPolicy)

    @field_validator('name')
    @classmethod
    def name_must_be_valid(cls, v):
        if not v or not v.replace('-', '').replace('_', '').isalnum():
            raise ValueError('name must be alphanumeric with dashes or underscores')
        return v

    @property
    def effective_tier(self) -> EnforcementTier:
        return self.tier or EnforcementTier.HARD


class SkillsConfig(BaseModel):
    version: str = "1.0"
    skills: list[SkillSpec] = Field(default_factory=list)

    @model_validator(mode='after')
    def names_must_be_unique(self):
        seen = set()
        for skill in self.skills:
            if skill.name in seen:
                raise ValueError(f"duplicate skill name: {skill.name}")
            seen.add(skill.name)
        return self

    def get(self, name: str) -> Optional[SkillSpec]:
        for skill in self.skills:
            if skill.name == name:
                return skill
        return None


# ============================================================================
# Profile definitions (profiles.yaml)
# ============================================================================

class CompletionRequirement(BaseModel):
    """Evidence that must exist before a session may be considered done."""
    type: EvidenceType
    name: Optional[str] = None
    path: Optional[str] = None
    pattern: Optional[str] = None
    command: Optional[str] = None
    expected_exit_code: int = 0
    description: Optional[str] = None

    @model_validator(mode='after')
    def check_fields_for_type(self):
        if self.type == EvidenceType.FILE_EXISTS and not self.path:
            raise ValueError('path is required for file_exists evidence')
        if self.type == EvidenceType.MARKER_FOUND and not (self.path and self.pattern):
            raise ValueError('path and pattern are required for marker_found evidence')
        if self.type == EvidenceType.COMMAND_SUCCESS and not self.command:
            raise ValueError('command is required for command_success evidence')
        return self

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        return self.path or self.command or self.description or self.type.value


class ProfileSpec(BaseModel):
    """A workflow profile selected by trigger words in the user prompt."""
    name: str
    description: Optional[str] = None
    match: list[str] = Field(default_factory=list)
    capabilities_required: list[str] = Field(default_factory=list)
    strictness: Strictness = Strictness.ADVISORY
    completion_requirements: list[CompletionRequirement] = Field(default_factory=list)
    priority: int = 0


class ProfilesConfig(BaseModel):
    version: str = "1.0"
    profiles: list[ProfileSpec] = Field(default_factory=list)
    default_profile: Optional[str] = None

    @model_validator(mode='after')
    def default_must_exist(self):
        if self.default_profile and self.get(self.default_profile) is None:
            raise ValueError(f"default_profile '{self.default_profile}' is not defined")
        return self

    def get(self, name: str) -> Optional[ProfileSpec]:
        for profile in self.profiles:
            if profile.name == name:
                return profile
        return None


# ============================================================================
# Runtime state
# ============================================================================

class CapabilityEvidence(BaseModel):
    capability: str
    satisfied_at: str = Field(default_factory=_utcnow)
    satisfied_by: str
    evidence_type: EvidenceType = EvidenceType.MANUAL
    evidence_path: Optional[str] = None


class SessionState(BaseModel):
    """Persisted state of one activated skill chain."""
    session_id: str
    profile_id: str
    activated_at: str = Field(default_factory=_utcnow)
    chain: list[str] = Field(default_factory=list)
    capabilities_required: list[str] = Field(default_factory=list)
    capabilities_satisfied: list[CapabilityEvidence] = Field(default_factory=list)
    current_skill_index: int = 0
    strictness: Strictness = Strictness.ADVISORY
    blocked_intents: dict[str, str] = Field(default_factory=dict)

    def satisfied_capabilities(self) -> set[str]:
        return {c.capability for c in self.capabilities_satisfied}

    def unsatisfied_capabilities(self) -> list[str]:
        done = self.satisfied_capabilities()
        return [c for c in self.capabilities_required if c not in done]
