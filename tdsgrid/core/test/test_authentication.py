import pytest
import requests

from tdsgrid import settings
from tdsgrid.core.authentication import RequestsSessionMixin, set_credentials


class TestAuthentication(object):
    def test_set_credentials(self):

        with settings:
            if "username@test.com" in settings:
                del settings["username@test.com"]

            if "password@test.com" in settings:
                del settings["password@test.com"]

            # require hostname
            with pytest.raises(TypeError):
                set_credentials()

            with pytest.raises(ValueError):
                set_credentials(None, uname="test", password="test")

            with pytest.raises(ValueError):
                set_credentials("", uname="test", password="test")

            # make sure these are empty at first
            assert not settings["username@test.com"]
            assert not settings["password@test.com"]

            # set both username and pw
            set_credentials(hostname="test.com", uname="testuser", password="testpass")
            assert settings["username@test.com"] == "testuser"
            assert settings["password@test.com"] == "testpass"

            # set username only
            set_credentials(hostname="test.com", uname="testuser2")
            assert settings["username@test.com"] == "testuser2"
            assert settings["password@test.com"] == "testpass"

            # don't do anything if neither is provided, but the settings exist
            set_credentials(hostname="test.com")
            assert settings["username@test.com"] == "testuser2"
            assert settings["password@test.com"] == "testpass"


class SomeSource(RequestsSessionMixin):
    pass


class TestRequestsSessionMixin(object):
    def test_hostname(self):
        source = SomeSource(hostname="someurl.org")
        assert source.hostname == "someurl.org"

    def test_property_value_errors(self):
        source = SomeSource(hostname="propertyerrors.com")

        with pytest.raises(ValueError, match="set_credentials"):
            source.username

        with pytest.raises(ValueError, match="set_credentials"):
            source.password

    def test_session(self):
        with settings:
            source = SomeSource(hostname="session.com")
            session = source.session
            assert isinstance(session, requests.Session)
            assert session.auth is None

    def test_session_auth(self):
        with settings:
            set_credentials(hostname="auth.com", uname="user", password="pass")
            source = SomeSource(hostname="auth.com")
            assert source.session.auth == ("user", "pass")

    def test_auth_required(self):
        with settings:
            source = SomeSource(hostname="required.com", auth_required=True)
            with pytest.raises(ValueError):
                source.session

            source.set_credentials(username="user", password="pass")
            assert isinstance(source.session, requests.Session)
