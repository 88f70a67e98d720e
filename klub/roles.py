"""Closed vocabularies shared by models, access rules and routes."""
from enum import Enum


class Role(str, Enum):
    PRESIDENT = 'PREZES'
    COACH = 'TRENER'
    PLAYER = 'ZAWODNIK'

    @classmethod
    def parse(cls, raw_value):
        """Return the Role for a raw string, or None if it is not a known role."""
        try:
            return cls(str(raw_value or '').strip().upper())
        except ValueError:
            return None


class UnknownRoleError(ValueError):
    """Raised when a stored role string does not map onto Role."""


NO_CATEGORY = 'BRAK'
CATEGORIES = ('U9', 'U11', 'U13', 'U15', 'U17', 'U19', 'SENIOR', NO_CATEGORY)
POSITIONS = ('BRAMKARZ', 'OBRONCA', 'POMOCNIK', 'NAPASTNIK')

EVENT_TYPES = ('MECZ_LIGOWY', 'MECZ_PUCHAROWY', 'SPARING', 'TRENING', 'ZBIORKA')
TRAINING = 'TRENING'

ATTENDING = 'TAK'
NOT_ATTENDING = 'NIE'
UNDETERMINED = 'NIEOKRESLONY'
ATTENDANCE_STATUSES = (ATTENDING, NOT_ATTENDING, UNDETERMINED)

SLOT_STARTING = 'PODSTAWA'
SLOT_BENCH = 'REZERWA'
MAX_STARTING = 11
MAX_BENCH = 7


def normalize_category(raw_value, default=NO_CATEGORY):
    if raw_value is None or str(raw_value).strip() == '':
        return default
    candidate = str(raw_value).strip().upper()
    return candidate if candidate in CATEGORIES else None


def normalize_position(raw_value):
    """Return (ok, position); an empty value clears the position."""
    if raw_value is None or str(raw_value).strip() == '':
        return True, None
    candidate = str(raw_value).strip().upper()
    if candidate not in POSITIONS:
        return False, None
    return True, candidate
