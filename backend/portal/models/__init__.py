"""SQLAlchemy models for the agency portal"""

from .base import Base
from .org import Org, OrgMember
from .deliverable import Deliverable, DeliverableAsset, ChecklistItem, DeliverableActivity
from .onboarding import OnboardingFlow, OnboardingNode, OnboardingProgress, ContractSignature
from .updates import WeeklyUpdate, RoadmapItem, ROADMAP_TIMEFRAMES
from .report import Report, ReportBlock
from .message import Conversation, Message, MessageRead

__all__ = [
    "Base",
    "Org",
    "OrgMember",
    "Deliverable",
    "DeliverableAsset",
    "ChecklistItem",
    "DeliverableActivity",
    "OnboardingFlow",
    "OnboardingNode",
    "OnboardingProgress",
    "ContractSignature",
    "WeeklyUpdate",
    "RoadmapItem",
    "ROADMAP_TIMEFRAMES",
    "Report",
    "ReportBlock",
    "Conversation",
    "Message",
    "MessageRead",
]
