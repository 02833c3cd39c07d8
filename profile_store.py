"""
Point lookup of a user's medical profile.

The lookup never raises: every outcome is returned as one of three result
types so callers can tell "this user has no profile yet" apart from a
database failure without inspecting error codes.
"""
import logging

from sqlalchemy.exc import NoResultFound, SQLAlchemyError

from models import db, MedicalProfile

logger = logging.getLogger(__name__)


class ProfileFound:
    def __init__(self, profile):
        self.profile = profile

    def __repr__(self):
        return f'ProfileFound({self.profile.id!r})'


class ProfileNotFound:
    def __repr__(self):
        return 'ProfileNotFound()'


class ProfileFetchFailed:
    def __init__(self, reason):
        self.reason = reason

    def __repr__(self):
        return f'ProfileFetchFailed({self.reason!r})'


def fetch_profile_by_user(user_id):
    """Look up the single profile owned by ``user_id``."""
    try:
        profile = MedicalProfile.query.filter_by(user_id=user_id).one()
    except NoResultFound:
        return ProfileNotFound()
    except SQLAlchemyError as e:
        logger.exception('Error fetching medical profile for user %s', user_id)
        db.session.rollback()
        return ProfileFetchFailed(str(e))
    return ProfileFound(profile)


def get_profile(profile_id):
    """Public lookup by profile id; returns None if unknown."""
    return db.session.get(MedicalProfile, profile_id)
