"""Middleware for actor context (customers, partners, companies, admins)."""
import enum
from functools import wraps

from flask import session, g

from marketplace.database import get_session
from marketplace.exceptions import UnauthenticatedError
from marketplace.models import AppUser, Partner, Company, AdminUser


class ActorKind(str, enum.Enum):
    """Kinds of signed-in actors. Each one is keyed by its own session cookie entry."""
    CUSTOMER = 'customer'
    PARTNER = 'partner'
    COMPANY = 'company'
    ADMIN = 'admin'


# kind -> (session key, model, whether the model has an `active` flag)
ACTOR_SOURCES = {
    ActorKind.CUSTOMER: ('user_id', AppUser, True),
    ActorKind.PARTNER: ('partner_id', Partner, True),
    ActorKind.COMPANY: ('company_id', Company, True),
    ActorKind.ADMIN: ('admin_user_id', AdminUser, False),
}


def load_actors():
    """
    Resolve every actor id carried by the session cookie into g.actors.

    Called before each request. An id that no longer resolves to an existing,
    active row is dropped from the cookie, so a deactivated account loses
    access on its next request.
    """
    g.actors = {}
    db_session = get_session()

    for kind, (key, model, has_active) in ACTOR_SOURCES.items():
        actor_id = session.get(key)
        if not actor_id:
            continue

        query = db_session.query(model).filter(model.id == actor_id)
        if has_active:
            query = query.filter(model.active.is_(True))
        actor = query.first()

        if actor:
            g.actors[kind] = actor
        else:
            session.pop(key, None)


def current_actor(kind: ActorKind):
    """The signed-in actor of this kind, or None."""
    return g.get('actors', {}).get(kind)


def current_actor_id(kind: ActorKind):
    actor = current_actor(kind)
    return actor.id if actor is not None else None


def require_actor(kind: ActorKind):
    """
    Decorator: require a signed-in actor of the given kind.

    Rejects with 401 (UnauthenticatedError) when absent; the actor is exposed
    to the view as g.actor.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = current_actor(kind)
            if actor is None:
                raise UnauthenticatedError()
            g.actor = actor
            return f(*args, **kwargs)
        return decorated_function
    return decorator
