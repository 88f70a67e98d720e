from klub.app import db
from klub.roles import (
    Role, UnknownRoleError, NO_CATEGORY, UNDETERMINED, SLOT_STARTING, SLOT_BENCH,
)
from klub.time_utils import utcnow_naive, isoformat_or_none


class User(db.Model):
    __tablename__ = 'uzytkownik'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(254), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    rola = db.Column(db.String(20), nullable=False, index=True)
    kategoria = db.Column(db.String(20), default=NO_CATEGORY, nullable=False, index=True)
    pozycja = db.Column(db.String(20), nullable=True)
    imie = db.Column(db.String(120), default='')
    nazwisko = db.Column(db.String(120), default='')
    telefon = db.Column(db.String(40), default='')
    narodowosc = db.Column(db.String(80), default='')
    contract_start = db.Column(db.Date, nullable=True)
    contract_end = db.Column(db.Date, nullable=True)
    reset_token_hash = db.Column(db.String(128), nullable=True, index=True)
    reset_token_expires_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    @property
    def role(self):
        role = Role.parse(self.rola)
        if role is None:
            raise UnknownRoleError(f'Unknown role {self.rola!r} for user {self.id}')
        return role

    @property
    def full_name(self):
        return f'{self.imie or ""} {self.nazwisko or ""}'.strip() or self.email

    def to_dict(self, include_contract=True):
        data = {
            'id': self.id,
            'email': self.email,
            'rola': self.rola,
            'kategoria': self.kategoria,
            'pozycja': self.pozycja,
            'imie': self.imie,
            'nazwisko': self.nazwisko,
            'telefon': self.telefon,
            'narodowosc': self.narodowosc,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }
        if include_contract:
            data['contractStart'] = isoformat_or_none(self.contract_start)
            data['contractEnd'] = isoformat_or_none(self.contract_end)
        return data

    def to_summary(self):
        return {
            'id': self.id,
            'email': self.email,
            'imie': self.imie,
            'nazwisko': self.nazwisko,
            'pozycja': self.pozycja,
        }


class Event(db.Model):
    __tablename__ = 'wydarzenie'

    id = db.Column(db.Integer, primary_key=True)
    tytul = db.Column(db.String(200), nullable=False)
    opis = db.Column(db.Text, default='')
    typ = db.Column(db.String(30), nullable=False)
    data = db.Column(db.DateTime, nullable=False, index=True)
    data_konca = db.Column(db.DateTime, nullable=True)
    lokalizacja = db.Column(db.String(300), default='')
    kategoria = db.Column(db.String(20), default=NO_CATEGORY, nullable=False, index=True)
    creator_id = db.Column(db.Integer, db.ForeignKey('uzytkownik.id', ondelete='SET NULL'),
                           nullable=True)
    reminder_sent = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    creator = db.relationship('User', backref='events_created')
    participants = db.relationship('EventParticipant', backref='event', lazy='selectin',
                                   cascade='all, delete-orphan')

    def participant_statuses(self):
        """Map player id to attendance status."""
        return {p.player_id: p.status for p in self.participants}

    def participant_for(self, player_id):
        for participant in self.participants:
            if participant.player_id == player_id:
                return participant
        return None

    def to_dict(self, include_participants=True):
        data = {
            'id': self.id,
            'tytul': self.tytul,
            'opis': self.opis,
            'typ': self.typ,
            'data': isoformat_or_none(self.data),
            'dataKonca': isoformat_or_none(self.data_konca),
            'lokalizacja': self.lokalizacja,
            'kategoria': self.kategoria,
            'utworzyl': self.creator_id,
            'reminderSent': self.reminder_sent,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }
        if include_participants:
            data['uczestnicy'] = [p.to_dict() for p in self.participants]
        return data


class EventParticipant(db.Model):
    """A player's attendance response to a training event."""
    __tablename__ = 'uczestnik'
    __table_args__ = (
        db.UniqueConstraint('event_id', 'player_id', name='uq_uczestnik_event_player'),
    )

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('wydarzenie.id', ondelete='CASCADE'),
                         nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('uzytkownik.id', ondelete='CASCADE'),
                          nullable=False)
    status = db.Column(db.String(20), default=UNDETERMINED, nullable=False)
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    player = db.relationship('User', backref=db.backref(
        'event_responses', cascade='all'))

    def to_dict(self):
        return {
            'zawodnik': self.player.to_summary() if self.player else {'id': self.player_id},
            'status': self.status,
        }


class Squad(db.Model):
    __tablename__ = 'kadra'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(100), nullable=False)
    kategoria = db.Column(db.String(20), default=NO_CATEGORY, nullable=False, index=True)
    event_id = db.Column(db.Integer, db.ForeignKey('wydarzenie.id', ondelete='SET NULL'),
                         nullable=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey('uzytkownik.id', ondelete='SET NULL'),
                              nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    created_by = db.relationship('User', backref='squads_created')
    event = db.relationship('Event', backref='squads')
    members = db.relationship('SquadMember', backref='squad', lazy='selectin',
                              cascade='all, delete-orphan',
                              order_by='SquadMember.order')

    def player_ids(self, slot):
        return [m.player_id for m in self.members if m.slot == slot]

    def replace_members(self, starting_ids, bench_ids):
        # Old rows must be gone before re-inserting the same (squad, player) pairs.
        self.members.clear()
        db.session.flush()
        self.members = [
            SquadMember(player_id=player_id, slot=SLOT_STARTING, order=index)
            for index, player_id in enumerate(starting_ids)
        ] + [
            SquadMember(player_id=player_id, slot=SLOT_BENCH, order=index)
            for index, player_id in enumerate(bench_ids)
        ]

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'kategoria': self.kategoria,
            'wydarzenieId': self.event_id,
            'startingEleven': [m.to_dict() for m in self.members if m.slot == SLOT_STARTING],
            'bench': [m.to_dict() for m in self.members if m.slot == SLOT_BENCH],
            'createdBy': {
                'id': self.created_by.id,
                'imie': self.created_by.imie,
                'nazwisko': self.created_by.nazwisko,
                'rola': self.created_by.rola,
            } if self.created_by else None,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }


class SquadMember(db.Model):
    __tablename__ = 'kadra_zawodnik'
    __table_args__ = (
        db.UniqueConstraint('squad_id', 'player_id', name='uq_kadra_zawodnik'),
    )

    id = db.Column(db.Integer, primary_key=True)
    squad_id = db.Column(db.Integer, db.ForeignKey('kadra.id', ondelete='CASCADE'),
                         nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('uzytkownik.id', ondelete='CASCADE'),
                          nullable=False)
    slot = db.Column(db.String(20), nullable=False)
    order = db.Column(db.Integer, default=0, nullable=False)

    player = db.relationship('User', backref=db.backref(
        'squad_memberships', cascade='all'))

    def to_dict(self):
        return self.player.to_summary() if self.player else {'id': self.player_id}


class Statistic(db.Model):
    __tablename__ = 'statystyka'
    __table_args__ = (
        db.UniqueConstraint('player_id', 'sezon', name='uq_statystyka_player_sezon'),
    )

    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('uzytkownik.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    sezon = db.Column(db.String(20), nullable=True)
    zolte_kartki = db.Column(db.Integer, default=0, nullable=False)
    czerwone_kartki = db.Column(db.Integer, default=0, nullable=False)
    rozegrane_minuty = db.Column(db.Integer, default=0, nullable=False)
    strzelone_bramki = db.Column(db.Integer, default=0, nullable=False)
    odbytych_treningow = db.Column(db.Integer, default=0, nullable=False)
    czyste_konta = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    player = db.relationship('User', backref=db.backref(
        'statistics', cascade='all'))

    # JSON key -> column attribute
    FIELD_COLUMNS = {
        'zolteKartki': 'zolte_kartki',
        'czerwoneKartki': 'czerwone_kartki',
        'rozegraneMinuty': 'rozegrane_minuty',
        'strzeloneBramki': 'strzelone_bramki',
        'odbytychTreningow': 'odbytych_treningow',
        'czysteKonta': 'czyste_konta',
    }

    def apply_counts(self, counts):
        for key, value in counts.items():
            setattr(self, self.FIELD_COLUMNS[key], value)

    def counts(self):
        return {key: getattr(self, column) or 0 for key, column in self.FIELD_COLUMNS.items()}

    def to_dict(self, include_player=True):
        data = {
            'id': self.id,
            'zawodnikId': self.player_id,
            'sezon': self.sezon,
            **self.counts(),
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }
        if include_player and self.player:
            data['zawodnik'] = {
                'id': self.player.id,
                'imie': self.player.imie,
                'nazwisko': self.player.nazwisko,
                'email': self.player.email,
                'kategoria': self.player.kategoria,
                'pozycja': self.player.pozycja,
            }
        return data
