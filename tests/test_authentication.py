"""
Unit tests for sign-in and sign-out
"""
import pytest


class TestUserLogin:
    """Test cases for user authentication and login functionality"""

    def test_successful_login(self, client, app, test_user):
        """A registered user can log in and lands on the dashboard"""
        response = client.post('/login', data={
            'username': 'testuser',
            'password': 'testpassword123'
        }, follow_redirects=True)

        assert response.status_code == 200
        assert b'Dashboard' in response.data

        # Verify session is active
        with client.session_transaction() as sess:
            assert '_user_id' in sess

    def test_login_with_incorrect_password(self, client, app, test_user):
        response = client.post('/login', data={
            'username': 'testuser',
            'password': 'wrongpassword'
        }, follow_redirects=True)

        assert b'Invalid username or password' in response.data
        with client.session_transaction() as sess:
            assert '_user_id' not in sess

    def test_login_with_nonexistent_user(self, client, app):
        response = client.post('/login', data={
            'username': 'nonexistentuser',
            'password': 'anypassword'
        }, follow_redirects=True)

        assert b'Invalid username or password' in response.data
        with client.session_transaction() as sess:
            assert '_user_id' not in sess

    @pytest.mark.parametrize('username,password', [
        ('', 'password123'),
        ('testuser', ''),
    ])
    def test_login_with_empty_fields(self, client, test_user, username, password):
        client.post('/login', data={
            'username': username,
            'password': password
        }, follow_redirects=True)

        with client.session_transaction() as sess:
            assert '_user_id' not in sess

    def test_logout(self, authenticated_client, app):
        """Logout clears the session and returns to the home page"""
        with authenticated_client.session_transaction() as sess:
            assert '_user_id' in sess

        response = authenticated_client.get('/logout', follow_redirects=False)
        assert response.status_code == 302
        assert response.location.endswith('/')

        response = authenticated_client.get('/', follow_redirects=True)
        assert b'logged out' in response.data

        with authenticated_client.session_transaction() as sess:
            assert '_user_id' not in sess

    def test_login_redirect_to_dashboard(self, client, test_user):
        response = client.post('/login', data={
            'username': 'testuser',
            'password': 'testpassword123'
        }, follow_redirects=False)

        assert response.status_code == 302
        assert '/dashboard' in response.location

    def test_login_follows_relative_next(self, client, test_user):
        response = client.post('/login?next=/medications', data={
            'username': 'testuser',
            'password': 'testpassword123'
        }, follow_redirects=False)

        assert response.status_code == 302
        assert response.location.endswith('/medications')

    def test_login_ignores_external_next(self, client, test_user):
        response = client.post('/login?next=https://evil.example.com/', data={
            'username': 'testuser',
            'password': 'testpassword123'
        }, follow_redirects=False)

        assert response.status_code == 302
        assert 'evil.example.com' not in response.location
        assert '/dashboard' in response.location

    def test_authenticated_user_cannot_access_login(self, authenticated_client):
        response = authenticated_client.get('/login', follow_redirects=False)

        assert response.status_code == 302
        assert '/dashboard' in response.location

    def test_authenticated_user_cannot_access_register(self, authenticated_client):
        response = authenticated_client.get('/register', follow_redirects=False)

        assert response.status_code == 302
        assert '/dashboard' in response.location
