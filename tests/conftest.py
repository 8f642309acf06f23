import json
from unittest.mock import Mock

import pytest

from pvenom.models import Credentials

TICKET_BODY = {'data': {'ticket': 'T', 'CSRFPreventionToken': 'C', 'username': 'root@pam'}}


def make_response(status=200, payload=None, text=None):
    """Stand-in for requests.Response with just the fields the client reads."""
    resp = Mock()
    resp.status_code = status
    if payload is not None:
        resp.json.return_value = payload
        resp.text = text if text is not None else json.dumps(payload)
    else:
        resp.json.side_effect = ValueError('No JSON object could be decoded')
        resp.text = text or ''
    return resp


@pytest.fixture
def credentials():
    return Credentials(controller_host='pve.example.lan', username='root@pam', password='s3cret')


@pytest.fixture
def mock_http(monkeypatch):
    """Replace requests.Session inside the client module and return the instance."""
    http = Mock()
    monkeypatch.setattr('pvenom.client.requests.Session', Mock(return_value=http))
    return http


@pytest.fixture
def client(mock_http, credentials):
    """A SessionClient already authenticated against https://pve.example.lan:8006."""
    from pvenom.client import SessionClient

    mock_http.post.return_value = make_response(payload=TICKET_BODY)
    c = SessionClient(timeout=(5, 15))
    c.authenticate('https://pve.example.lan:8006', credentials)
    return c
