import pytest
import requests

from conftest import TICKET_BODY, make_response
from pvenom.client import SessionClient
from pvenom.errors import (
    ControllerError,
    DecodeError,
    InvalidCredentials,
    RequestTimeout,
    SessionExpired,
    TransportError,
    UnexpectedResponse,
    Unreachable,
)
from pvenom.models import TransportMode


class TestAuthenticate:

    def test_success_builds_session(self, mock_http, credentials):
        mock_http.post.return_value = make_response(payload=TICKET_BODY)

        client = SessionClient(timeout=(5, 15))
        session = client.authenticate('https://pve.example.lan:8006/', credentials)

        assert session.auth_ticket == 'T'
        assert session.csrf_token == 'C'
        assert session.base_url == 'https://pve.example.lan:8006'
        assert session.mode is TransportMode.ENCRYPTED
        assert client.session is session
        mock_http.post.assert_called_once_with(
            'https://pve.example.lan:8006/api2/json/access/ticket',
            data={'username': 'root@pam', 'password': 's3cret'},
            verify=True,
            timeout=(5, 15),
        )

    @pytest.mark.parametrize('status', [401, 403])
    def test_rejected_credentials(self, mock_http, credentials, status):
        mock_http.post.return_value = make_response(status, {'data': None})

        with pytest.raises(InvalidCredentials) as exc:
            SessionClient().authenticate('https://pve:8006', credentials)

        assert exc.value.status == status
        assert not isinstance(exc.value, Unreachable)

    def test_server_error_is_unexpected_response(self, mock_http, credentials):
        mock_http.post.return_value = make_response(500, text='x' * 1000)

        with pytest.raises(UnexpectedResponse) as exc:
            SessionClient().authenticate('https://pve:8006', credentials)

        assert exc.value.status == 500
        assert len(exc.value.body_snippet) <= 203

    @pytest.mark.parametrize('payload', [
        {'data': {'ticket': 'T'}},
        {'data': None},
        {'nothing': 'here'},
        None,
    ])
    def test_malformed_body_is_unexpected_response(self, mock_http, credentials, payload):
        mock_http.post.return_value = make_response(200, payload)

        with pytest.raises(UnexpectedResponse):
            SessionClient().authenticate('https://pve:8006', credentials)

    @pytest.mark.parametrize('error', [
        requests.exceptions.ConnectionError('refused'),
        requests.exceptions.SSLError('handshake failure'),
        requests.exceptions.ConnectTimeout('slow'),
    ])
    def test_transport_failure_is_unreachable(self, mock_http, credentials, error):
        mock_http.post.side_effect = error

        with pytest.raises(Unreachable) as exc:
            SessionClient().authenticate('https://pve:8006', credentials)

        assert exc.value.cause is error
        assert exc.value.url == 'https://pve:8006/api2/json/access/ticket'

    def test_disabled_verification_applies_to_later_requests(self, mock_http, credentials):
        mock_http.post.return_value = make_response(payload=TICKET_BODY)
        mock_http.request.return_value = make_response(payload={'data': []})

        client = SessionClient()
        client.authenticate('https://pve:8006', credentials, cert_verification=False)
        client.request('GET', '/api2/json/nodes')

        assert mock_http.post.call_args.kwargs['verify'] is False
        assert mock_http.request.call_args.kwargs['verify'] is False

    def test_verification_is_per_client(self, mock_http, credentials):
        mock_http.post.return_value = make_response(payload=TICKET_BODY)

        insecure = SessionClient()
        insecure.authenticate('https://pve:8006', credentials, cert_verification=False)
        secure = SessionClient()
        secure.authenticate('https://pve:8006', credentials)

        assert insecure.verify is False
        assert secure.verify is True

    def test_ca_bundle_used_when_verifying(self, mock_http, credentials):
        mock_http.post.return_value = make_response(payload=TICKET_BODY)

        client = SessionClient(ca_cert_path='/etc/pve/pve-root-ca.pem')
        client.authenticate('https://pve:8006', credentials)

        assert mock_http.post.call_args.kwargs['verify'] == '/etc/pve/pve-root-ca.pem'

    def test_password_not_logged(self, mock_http, credentials, caplog):
        mock_http.post.return_value = make_response(payload=TICKET_BODY)

        with caplog.at_level('DEBUG', logger='pvenom'):
            SessionClient().authenticate('https://pve:8006', credentials)

        assert 's3cret' not in caplog.text
        assert 's3cret' not in repr(credentials)


class TestRequest:

    def test_get_sends_cookie_without_csrf(self, client, mock_http):
        mock_http.request.return_value = make_response(payload={'data': []})

        client.request('GET', '/api2/json/nodes')

        args, kwargs = mock_http.request.call_args
        assert args == ('GET', 'https://pve.example.lan:8006/api2/json/nodes')
        assert kwargs['headers'] == {'Cookie': 'PVEAuthCookie=T'}
        assert kwargs['timeout'] == (5, 15)

    @pytest.mark.parametrize('method', ['POST', 'put', 'DELETE'])
    def test_mutating_request_sends_cookie_and_csrf(self, client, mock_http, method):
        mock_http.request.return_value = make_response(payload={'data': None})

        client.request(method, '/api2/json/nodes/pve1/qemu/100/status/start', {'timeout': 5})

        kwargs = mock_http.request.call_args.kwargs
        assert kwargs['headers'] == {'Cookie': 'PVEAuthCookie=T', 'CSRFPreventionToken': 'C'}
        assert kwargs['data'] == {'timeout': 5}

    def test_rejected_ticket_is_session_expired(self, client, mock_http):
        mock_http.request.return_value = make_response(401, text='invalid ticket')

        with pytest.raises(SessionExpired):
            client.request('GET', '/api2/json/nodes')

    def test_other_status_is_controller_error(self, client, mock_http):
        mock_http.request.return_value = make_response(500, text='hostname lookup failed')

        with pytest.raises(ControllerError) as exc:
            client.request('GET', '/api2/json/nodes/ghost/status')

        assert exc.value.status == 500
        assert 'hostname lookup failed' in str(exc.value)
        assert not isinstance(exc.value, SessionExpired)

    def test_timeout(self, client, mock_http):
        mock_http.request.side_effect = requests.exceptions.ReadTimeout('read timed out')

        with pytest.raises(RequestTimeout):
            client.request('GET', '/api2/json/nodes')

    def test_transport_failure(self, client, mock_http):
        mock_http.request.side_effect = requests.exceptions.ConnectionError('reset')

        with pytest.raises(TransportError):
            client.request('GET', '/api2/json/nodes')

    def test_request_without_session(self, mock_http):
        with pytest.raises(SessionExpired):
            SessionClient().request('GET', '/api2/json/nodes')
        mock_http.request.assert_not_called()

    def test_no_retry_on_failure(self, client, mock_http):
        mock_http.request.side_effect = requests.exceptions.ConnectionError('reset')

        with pytest.raises(TransportError):
            client.request('GET', '/api2/json/nodes')

        assert mock_http.request.call_count == 1

    def test_get_json_unwraps_envelope(self, client, mock_http):
        mock_http.request.return_value = make_response(payload={'data': {'version': '8.2'}})

        assert client.get_json('/api2/json/version') == {'version': '8.2'}

    def test_get_json_non_json_body(self, client, mock_http):
        mock_http.request.return_value = make_response(200, text='<html>')

        with pytest.raises(DecodeError) as exc:
            client.get_json('/api2/json/version')

        assert exc.value.path == '/api2/json/version'
