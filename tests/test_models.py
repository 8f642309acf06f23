from dataclasses import FrozenInstanceError

import pytest

from pvenom.models import Container, Credentials, Guest, GuestKind, Node, Session, TransportMode, VM


def test_session_hides_secrets_in_repr():
    session = Session(auth_ticket='PVE:root@pam:ABC', csrf_token='CSRF', base_url='http://pve:8006')

    assert 'PVE:root@pam:ABC' not in repr(session)
    assert 'CSRF' not in repr(session)
    assert session.mode is TransportMode.PLAINTEXT
    assert session.created_at.tzinfo is not None


def test_credentials_are_immutable():
    creds = Credentials('pve', 'root@pam', 'pw')

    with pytest.raises(FrozenInstanceError):
        creds.password = 'other'


def test_guest_is_tagged_union():
    vm = Guest.from_vm(VM(vmid=100, name='db', status='running', cpus=4, maxmem=1024))
    ct = Guest.from_container(Container(vmid=200, name='cache'))

    assert vm.kind is GuestKind.VM and vm.kind.label == 'VM'
    assert ct.kind is GuestKind.CONTAINER and ct.kind.label == 'LXC'
    assert (vm.vmid, vm.name, vm.status, vm.cpus, vm.maxmem) == (100, 'db', 'running', 4, 1024)
    assert ct.status == ''
    assert vm.to_dict()['type'] == 'VM'


def test_guest_from_api_coerces_numbers():
    vm = VM.from_api({'vmid': '105', 'name': 'x', 'cpus': '2', 'maxmem': 10})

    assert vm.vmid == 105
    assert vm.cpus == 2
    assert isinstance(vm, VM)


@pytest.mark.parametrize('payload', [
    {'name': 'no-vmid'},
    {'vmid': 100},
    {'vmid': 'abc', 'name': 'x'},
    ['not', 'a', 'dict'],
])
def test_guest_from_api_rejects_bad_shapes(payload):
    with pytest.raises((KeyError, TypeError, ValueError)):
        Container.from_api(payload)


def test_node_requires_name_and_status():
    with pytest.raises(KeyError):
        Node.from_api({'node': 'pve1'})


def test_transport_mode_from_url():
    assert TransportMode.from_url('https://pve:8006') is TransportMode.ENCRYPTED
    assert TransportMode.from_url('HTTP://pve:8006') is TransportMode.PLAINTEXT
