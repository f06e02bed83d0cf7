# backend/filhos/db/models/__init__.py

from filhos.db.models.user import User
from filhos.db.models.child import Child
from filhos.db.models.caregiver import Caregiver
from filhos.db.models.growth_record import GrowthRecord

from filhos.db.models.vaccine_definition import VaccineDefinition
from filhos.db.models.vaccination_record import VaccinationRecord
from filhos.db.models.push_subscription import PushSubscription
from filhos.db.models.invite_code import InviteCode

from filhos.db.models.health_event import HealthEvent
from filhos.db.models.milestone import Milestone
from filhos.db.models.diary_entry import DiaryEntry
