"""Role and category visibility rules.

Every predicate takes the acting user first. Users expose ``role`` (a
:class:`~klub.roles.Role`), ``kategoria`` and ``id``. Each rule dispatches
over all three roles and raises :class:`~klub.roles.UnknownRoleError` for
anything else, so a new role cannot silently inherit access.

Category ``BRAK`` on an event or squad marks it club-wide: every role sees it.
"""
from klub.roles import Role, UnknownRoleError, NO_CATEGORY


def _unknown(role):
    return UnknownRoleError(f'No access rule for role {role!r}')


def _same_category(actor, target):
    return actor.kategoria == target.kategoria


def visible_categories(actor):
    """Categories of events/squads the actor may read, or None for all."""
    role = actor.role
    if role is Role.PRESIDENT:
        return None
    if role in (Role.COACH, Role.PLAYER):
        return {actor.kategoria, NO_CATEGORY}
    raise _unknown(role)


def can_view_category(actor, category):
    allowed = visible_categories(actor)
    return allowed is None or category in allowed


# ── Users ─────────────────────────────────────────────────────────────

def can_view_user(actor, target):
    role = actor.role
    if role is Role.PRESIDENT:
        return True
    if actor.id == target.id:
        return True
    if role is Role.COACH:
        if target.role is Role.PLAYER:
            return _same_category(actor, target)
        return True
    if role is Role.PLAYER:
        return False
    raise _unknown(role)


def can_list_user(actor, target):
    """Whether ``target`` appears in the actor's user directory."""
    role = actor.role
    if role is Role.PRESIDENT:
        return True
    if role is Role.COACH:
        return can_view_user(actor, target)
    if role is Role.PLAYER:
        if target.role is Role.PRESIDENT:
            return True
        return target.role is Role.COACH and _same_category(actor, target)
    raise _unknown(role)


def scope_user_query(actor, query, user_model):
    """Restrict a User query to the rows ``can_list_user`` would accept."""
    role = actor.role
    if role is Role.PRESIDENT:
        return query
    if role is Role.COACH:
        return query.filter(
            (user_model.rola != Role.PLAYER.value)
            | (user_model.kategoria == actor.kategoria)
        )
    if role is Role.PLAYER:
        return query.filter(
            (user_model.rola == Role.PRESIDENT.value)
            | ((user_model.rola == Role.COACH.value)
               & (user_model.kategoria == actor.kategoria))
        )
    raise _unknown(role)


def can_see_contract(actor, target):
    role = actor.role
    if role is Role.PRESIDENT:
        return True
    if role is Role.COACH:
        return target.role is not Role.PLAYER
    if role is Role.PLAYER:
        return actor.id == target.id
    raise _unknown(role)


def serialize_user_for(actor, target):
    return target.to_dict(include_contract=can_see_contract(actor, target))


def can_create_user(actor, role, category):
    actor_role = actor.role
    if actor_role is Role.PRESIDENT:
        return True
    if actor_role is Role.COACH:
        return role is Role.PLAYER and category == actor.kategoria
    if actor_role is Role.PLAYER:
        return False
    raise _unknown(actor_role)


def can_edit_user(actor, target):
    role = actor.role
    if role is Role.PRESIDENT:
        return True
    if role is Role.COACH:
        return target.role is Role.PLAYER and _same_category(actor, target)
    if role is Role.PLAYER:
        return False
    raise _unknown(role)


def can_change_privileged_fields(actor):
    """Role, category and contract dates are president-only."""
    role = actor.role
    if role is Role.PRESIDENT:
        return True
    if role in (Role.COACH, Role.PLAYER):
        return False
    raise _unknown(role)


# ── Events and squads ────────────────────────────────────────────────

def can_manage_owned(actor, creator_id):
    """Edit/delete rule for events and squads: creator or president."""
    role = actor.role
    if role is Role.PRESIDENT:
        return True
    if role is Role.COACH:
        return creator_id == actor.id
    if role is Role.PLAYER:
        return False
    raise _unknown(role)


def can_see_roster(actor):
    role = actor.role
    if role in (Role.PRESIDENT, Role.COACH):
        return True
    if role is Role.PLAYER:
        return False
    raise _unknown(role)


def serialize_event_for(actor, event, detail=False):
    if can_see_roster(actor):
        return event.to_dict(include_participants=True)
    data = event.to_dict(include_participants=False)
    if detail:
        data['mojStatus'] = event.participant_statuses().get(actor.id)
    return data


def can_select_player(actor, player):
    """Whether a coach/president may put ``player`` into a squad."""
    role = actor.role
    if role is Role.PRESIDENT:
        return True
    if role is Role.COACH:
        return _same_category(actor, player)
    if role is Role.PLAYER:
        return False
    raise _unknown(role)


# ── Statistics ───────────────────────────────────────────────────────

def scope_player_query(actor, query, user_model):
    """Restrict a player query to the players whose statistics the actor may read."""
    role = actor.role
    if role is Role.PRESIDENT:
        return query
    if role is Role.COACH:
        return query.filter(user_model.kategoria == actor.kategoria)
    if role is Role.PLAYER:
        return query.filter(user_model.id == actor.id)
    raise _unknown(role)


def can_view_statistics(actor, player):
    role = actor.role
    if role is Role.PRESIDENT:
        return True
    if role is Role.COACH:
        return _same_category(actor, player)
    if role is Role.PLAYER:
        return actor.id == player.id
    raise _unknown(role)


def can_edit_statistics(actor, player):
    role = actor.role
    if role is Role.PRESIDENT:
        return True
    if role is Role.COACH:
        return _same_category(actor, player)
    if role is Role.PLAYER:
        return False
    raise _unknown(role)


# ── Mail ─────────────────────────────────────────────────────────────

def message_denial(sender, recipient):
    """Return a reason the sender may not mail ``recipient``, or None."""
    role = sender.role
    target_role = recipient.role
    if role is Role.PRESIDENT:
        return None
    if role is Role.COACH:
        if target_role is Role.PLAYER and not _same_category(sender, recipient):
            return (
                'Możesz wysyłać maile tylko do zawodników z Twojej kategorii '
                f'({sender.kategoria})'
            )
        return None
    if role is Role.PLAYER:
        if target_role is Role.PLAYER:
            return 'Zawodnicy nie mogą wysyłać maili między sobą'
        if target_role is Role.COACH and not _same_category(sender, recipient):
            return (
                'Możesz wysłać mail tylko do trenera swojej kategorii '
                f'({sender.kategoria})'
            )
        return None
    raise _unknown(role)


def can_mail_category(sender, category):
    role = sender.role
    if role is Role.PRESIDENT:
        return True
    if role is Role.COACH:
        return category == sender.kategoria
    if role is Role.PLAYER:
        return False
    raise _unknown(role)
