"""
Controller for the profile dashboard screen.

A screen is built per request with an explicit :class:`UserSession`, mounted
once, and then read by the template. Mounting walks a single forward pass:

    LOADING -> UNAUTHENTICATED            (no user, caller must redirect)
    LOADING -> ERROR | EMPTY_PROFILE | LOADED

Reaching LOADED also derives the emergency QR payload and asks the encoder
for an image. The image is optional: if encoding fails the screen stays
LOADED and simply has no image to show.
"""
import logging
from collections import namedtuple
from enum import Enum

from flask import flash

from profile_store import ProfileFound, ProfileNotFound, fetch_profile_by_user
from qr_codes import QRCodeError, emergency_url, encode_data_url

logger = logging.getLogger(__name__)

PROFILE_LOAD_ERROR = 'Failed to load medical profile'

DashboardAction = namedtuple('DashboardAction', ['label', 'endpoint', 'values'])


class DashboardState(Enum):
    UNAUTHENTICATED = 'unauthenticated'
    LOADING = 'loading'
    ERROR = 'error'
    EMPTY_PROFILE = 'empty_profile'
    LOADED = 'loaded'


class UserSession:
    """The signed-in user (or nobody) plus a way to end the session."""

    def __init__(self, user=None, sign_out=None):
        self.user = user
        self._sign_out = sign_out

    @property
    def is_authenticated(self):
        return bool(self.user is not None and getattr(self.user, 'is_authenticated', False))

    @property
    def user_id(self):
        return self.user.id if self.is_authenticated else None

    @property
    def email(self):
        return self.user.email if self.is_authenticated else None

    def sign_out(self):
        if self._sign_out is not None:
            self._sign_out()
        self.user = None


class CancelToken:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class DashboardScreen:

    def __init__(self, session, origin, fetch_profile=None, encode_qr=None, notify=None, qr_options=None):
        self.session = session
        self.origin = origin
        self.fetch_profile = fetch_profile or fetch_profile_by_user
        self.encode_qr = encode_qr or encode_data_url
        self.notify = notify or flash
        self.qr_options = qr_options or {}

        self.state = DashboardState.LOADING
        self.profile = None
        self.qr_payload = None
        self.qr_code_data_url = ''
        self.redirect_to = None
        self.token = CancelToken()

    def mount(self):
        if not self.session.is_authenticated:
            self.state = DashboardState.UNAUTHENTICATED
            self.redirect_to = 'login'
            return self
        self.load_profile()
        return self

    def teardown(self):
        """Discard any result that settles after this point."""
        self.token.cancel()

    def load_profile(self):
        result = self.fetch_profile(self.session.user_id)
        if self.token.cancelled:
            return

        if isinstance(result, ProfileFound):
            self.profile = result.profile
            self.state = DashboardState.LOADED
            if self.profile.id:
                self.generate_qr_code(self.profile.id)
        elif isinstance(result, ProfileNotFound):
            self.state = DashboardState.EMPTY_PROFILE
        else:
            logger.error('Error fetching medical profile: %s', getattr(result, 'reason', result))
            self.state = DashboardState.ERROR
            self.notify(PROFILE_LOAD_ERROR, 'error')

    def generate_qr_code(self, profile_id):
        payload = emergency_url(self.origin, profile_id)
        self.qr_payload = payload
        try:
            data_url = self.encode_qr(payload, **self.qr_options)
        except QRCodeError:
            logger.exception('Error generating QR code for profile %s', profile_id)
            return
        if self.token.cancelled:
            return
        self.qr_code_data_url = data_url

    @property
    def actions(self):
        """Buttons for the action bar, in display order."""
        actions = []
        if self.state is DashboardState.LOADED:
            actions.append(DashboardAction('Edit Medical Profile', 'profile_edit', {}))
            actions.append(DashboardAction('Preview Emergency View', 'emergency_view',
                                           {'profile_id': self.profile.id}))
        actions.append(DashboardAction('Medication Reminders', 'medications', {}))
        return actions

    def go_back(self):
        return 'index'
