import functools

import pytest
from fastapi.testclient import TestClient

from flow_lib.config.settings import LocalBackendConfig, StorageSettings
from flow_lib.main import Config, create_app
from flow_lib.storage.factory import create_adapter
from flow_lib.storage.medium import MemoryMedium


@pytest.fixture
def client(tmp_path):
    app = create_app(Config(
        data_dir=str(tmp_path / "data"),
        settings=StorageSettings(local=LocalBackendConfig(prefix="bk_")),
        persist_selection=False,
        adapter_factory=functools.partial(create_adapter, medium=MemoryMedium()),
    ))
    return TestClient(app)


def test_export_import_and_stats(client):
    client.put('/api/v1/storage/entries/products:p1', json={'id': 'p1', 'name': 'Widget'})
    client.put('/api/v1/storage/entries/bills:b1', json={'id': 'b1', 'total': 10})

    backup = client.get('/api/v1/backup').json()
    assert backup['metadata']['totalRecords'] == 2
    assert backup['data']['products'] == [{'id': 'p1', 'name': 'Widget'}]

    stats = client.get('/api/v1/backup/stats').json()
    assert stats['dataTypes']['bills'] == 1

    client.delete('/api/v1/storage/entries')
    assert client.get('/api/v1/backup/stats').json()['totalRecords'] == 0

    r = client.post('/api/v1/backup', json=backup)
    assert r.status_code == 200
    assert r.json()['imported'] == 2
    assert client.get('/api/v1/storage/entries/products:p1').json()['name'] == 'Widget'

    r = client.post('/api/v1/backup', json=backup)
    assert r.json()['skipped'] == 2
    r = client.post('/api/v1/backup', params={'overwrite': 'true'}, json=backup)
    assert r.json()['imported'] == 2


def test_invalid_backup_is_bad_request(client):
    r = client.post('/api/v1/backup', json={'hello': 'world'})
    assert r.status_code == 400
    assert r.json()['detail']['error'] == 'invalid_backup'
