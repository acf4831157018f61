import time
import unittest
from fastapi.testclient import TestClient

from storefront.app import create_app
from storefront.auth import SessionStore, change_password, new_admin
from storefront.config import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD, Config
from storefront.models import AdminAccount
from storefront.repository import InMemoryRepository


class TestSessionStore(unittest.TestCase):
    def test_expiry(self):
        sessions = SessionStore(ttl_secs=-1)
        token = sessions.issue('a1')
        self.assertIsNone(sessions.resolve(token))
        self.assertIsNone(sessions.resolve(None))

    def test_revoke_account(self):
        sessions = SessionStore(ttl_secs=60)
        t1, t2, other = sessions.issue('a1'), sessions.issue('a1'), sessions.issue('b2')
        self.assertEqual(sessions.resolve(t1), 'a1')
        sessions.revoke_account('a1')
        self.assertIsNone(sessions.resolve(t1))
        self.assertIsNone(sessions.resolve(t2))
        self.assertEqual(sessions.resolve(other), 'b2')


class TestChangePassword(unittest.TestCase):
    def setUp(self):
        self.admins = InMemoryRepository(AdminAccount)
        self.account = self.admins.create(new_admin('Boss@Example.com', 'secret-one'))

    def test_email_normalized(self):
        self.assertEqual(self.account.email, 'boss@example.com')

    def test_rules(self):
        admins, account = self.admins, self.account
        self.assertEqual(change_password(admins, account, '', 'x', 'x'), (False, 'All fields are required'))
        self.assertEqual(change_password(admins, account, 'secret-one', 'abcdefgh', 'abcdefgX'),
                         (False, 'New passwords do not match'))
        ok, reason = change_password(admins, account, 'secret-one', 'short', 'short')
        self.assertFalse(ok)
        self.assertIn('8', reason)
        self.assertEqual(change_password(admins, account, 'wrong', 'abcdefgh', 'abcdefgh'),
                         (False, 'Current password is incorrect'))

    def test_success_rehashes(self):
        self.assertEqual(change_password(self.admins, self.account, 'secret-one', 'abcdefgh', 'abcdefgh'), (True, None))
        self.assertNotEqual(self.admins.get(self.account.id).passwordHash, self.account.passwordHash)


class TestAdminAuth(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app(Config()))

    def _login(self, email=DEFAULT_ADMIN_EMAIL, password=DEFAULT_ADMIN_PASSWORD):
        return self.client.post('/api/auth/login', json={'email': email, 'password': password})

    def test_login_success(self):
        r = self._login(email=DEFAULT_ADMIN_EMAIL.upper())
        self.assertEqual(r.status_code, 200, r.text)
        data = r.json()
        self.assertTrue(data['token'])
        self.assertEqual(data['user']['email'], DEFAULT_ADMIN_EMAIL)
        self.assertNotIn('passwordHash', data['user'])
        self.assertIsNotNone(data['user']['lastLogin'])
        self.assertIn('admin_session', r.cookies)

    def test_login_failure(self):
        self.assertEqual(self._login(password='nope').status_code, 401)
        self.assertEqual(self._login(email='someone@else.com').status_code, 401)
        self.assertEqual(self.client.post('/api/auth/login', json={}).status_code, 401)

    def test_no_admin_key_configured(self):
        r = self.client.get('/api/admin/profile', headers={'x-admin-key': ''})
        self.assertEqual(r.status_code, 401)

    def test_bearer_token(self):
        token = self._login().json()['token']
        self.client.cookies.clear()
        self.assertEqual(self.client.get('/api/admin/profile').status_code, 401)
        r = self.client.get('/api/admin/profile', headers={'Authorization': f'Bearer {token}'})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['data']['role'], 'Super Admin')

    def test_cookie_session(self):
        self._login()
        r = self.client.get('/api/orders')
        self.assertEqual(r.status_code, 200)

    def test_logout(self):
        token = self._login().json()['token']
        hdr = {'Authorization': f'Bearer {token}'}
        self.client.cookies.clear()
        self.assertEqual(self.client.post('/api/auth/logout', headers=hdr).status_code, 200)
        self.assertEqual(self.client.get('/api/admin/profile', headers=hdr).status_code, 401)

    def test_update_profile(self):
        hdr = {'Authorization': f"Bearer {self._login().json()['token']}"}
        r = self.client.put('/api/admin/profile', json={'name': 'Sana', 'phone': '', 'email': ' Sana@Shop.PK '},
                            headers=hdr)
        self.assertEqual(r.status_code, 200, r.text)
        data = r.json()['data']
        self.assertEqual(data['name'], 'Sana')
        self.assertEqual(data['email'], 'sana@shop.pk')
        # the new email is the login from now on
        self.assertEqual(self._login(email='sana@shop.pk').status_code, 200)

    def test_change_password_revokes_sessions(self):
        token = self._login().json()['token']
        hdr = {'Authorization': f'Bearer {token}'}
        self.client.cookies.clear()

        bad = self.client.post('/api/admin/change-password', json={
            'currentPassword': 'wrong', 'newPassword': 'new-secret', 'confirmPassword': 'new-secret',
        }, headers=hdr)
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(bad.json()['detail'], 'Current password is incorrect')

        r = self.client.post('/api/admin/change-password', json={
            'currentPassword': DEFAULT_ADMIN_PASSWORD, 'newPassword': 'new-secret', 'confirmPassword': 'new-secret',
        }, headers=hdr)
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(self.client.get('/api/admin/profile', headers=hdr).status_code, 401)
        self.assertEqual(self._login().status_code, 401)
        self.assertEqual(self._login(password='new-secret').status_code, 200)


class TestSessionTtl(unittest.TestCase):
    def test_expired_session_rejected(self):
        client = TestClient(create_app(Config(session_ttl_secs=0)))
        token = client.post('/api/auth/login', json={
            'email': DEFAULT_ADMIN_EMAIL, 'password': DEFAULT_ADMIN_PASSWORD,
        }).json()['token']
        client.cookies.clear()
        time.sleep(0.01)
        r = client.get('/api/admin/profile', headers={'Authorization': f'Bearer {token}'})
        self.assertEqual(r.status_code, 401)


if __name__ == '__main__':
    unittest.main()
