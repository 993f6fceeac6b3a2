"""Referral Service - unique referral codes for partners."""
import logging
import secrets
import string

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.models import Partner
from marketplace.exceptions import BusinessLogicError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_uppercase + string.digits


def _random_code(length: int) -> str:
    return ''.join(secrets.choice(ALPHABET) for _ in range(length))


def generate_referral_code(session: Session, partner_id: int, length: int = 8, max_attempts: int = 10) -> str:
    """
    Give a partner a new unique referral code.

    A code already taken by another partner is regenerated; so is a code that
    loses a race on the unique constraint at commit. After max_attempts the
    request fails with ConflictError.
    """
    partner = session.query(Partner).filter(Partner.id == partner_id).first()
    if not partner:
        raise NotFoundError('Partner not found')
    if partner.referral_code:
        raise BusinessLogicError('You already have a referral code',
                                 payload={'referral_code': partner.referral_code})

    for attempt in range(1, max_attempts + 1):
        code = _random_code(length)
        if session.query(Partner.id).filter(Partner.referral_code == code).first():
            continue

        partner.referral_code = code
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.warning(f"Referral code collision for partner {partner_id} (attempt {attempt})")
            partner = session.query(Partner).filter(Partner.id == partner_id).first()
            continue

        logger.info(f"Partner {partner_id} got referral code {code}")
        return code

    raise ConflictError('Could not generate a unique referral code, please try again')
