"""Tests for the upload HTTP API."""

import hashlib

import pytest
from fastapi.testclient import TestClient

from controller.main import app
from controller.service_locator import set_components


@pytest.fixture
def client(components):
    """Create FastAPI test client bound to temporary storage."""
    set_components(components)
    with TestClient(app) as test_client:
        yield test_client
    set_components(None)


def upload(client, file_hash, chunk_key, data):
    return client.post(
        '/upload',
        files={'chunk': (chunk_key, data)},
        data={'hash': chunk_key, 'fileHash': file_hash, 'filename': 'final.bin'},
    )


def upload_abc(client, file_hash='H1'):
    for key, data in [('0-a', b'AA'), ('2-c', b'CC'), ('1-b', b'BB')]:
        response = upload(client, file_hash, key, data)
        assert response.status_code == 200
        assert response.json()['code'] == 0


def test_root_endpoint(client):
    """Test health check endpoint."""
    response = client.get('/')
    assert response.status_code == 200
    assert response.json()['status'] == 'running'


def test_health_endpoint(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.json() == {'status': 'healthy', 'service': 'controller'}


def test_responses_carry_request_id(client):
    response = client.get('/health', headers={'X-Request-ID': 'req-123'})
    assert response.headers['X-Request-ID'] == 'req-123'

    response = client.get('/health')
    assert response.headers['X-Request-ID']


def test_end_to_end_upload_merge_verify(client, components):
    """Test the full chunk, merge and verify flow."""
    upload_abc(client)

    response = client.post('/merge', json={'fileHash': 'H1', 'fileName': 'final.bin', 'size': 6})
    assert response.status_code == 200
    data = response.json()
    assert data['code'] == 0
    assert data['url'] == '/uploads/final.bin'
    assert data['size'] == 6
    assert data['chunkCount'] == 3

    assert (components.artifact_store.root / 'final.bin').read_bytes() == b'AABBCC'

    digest = hashlib.md5(b'AABBCC').hexdigest()
    response = client.post('/verify', json={'fileHash': digest, 'fileName': 'final.bin'})
    assert response.status_code == 200
    assert response.json() == {'code': 0, 'verified': True, 'message': 'File integrity verified'}

    response = client.post('/verify', json={'fileHash': 'not-the-digest', 'fileName': 'final.bin'})
    assert response.status_code == 200
    data = response.json()
    assert data['verified'] is False
    assert data['details'] == {'expected': 'not-the-digest', 'actual': digest}


def test_check_file_instant_upload(client):
    response = client.post('/check-file', json={'fileHash': 'H1', 'fileName': 'final.bin', 'size': 6})
    assert response.status_code == 200
    assert response.json() == {'code': 0, 'exists': False, 'message': 'File does not exist'}

    upload_abc(client)
    client.post('/merge', json={'fileHash': 'H1', 'fileName': 'final.bin', 'size': 6})

    response = client.post('/check-file', json={'fileHash': 'H1', 'fileName': 'final.bin', 'size': 6})
    data = response.json()
    assert data['exists'] is True
    assert data['file']['name'] == 'final.bin'
    assert data['file']['size'] == 6
    assert 'createTime' in data['file']

    response = client.post('/check-file', json={'fileHash': 'H1', 'fileName': 'final.bin', 'size': 7})
    assert response.json()['exists'] is False


def test_list_files(client, components):
    (components.artifact_store.root / 'b.bin').write_bytes(b'bb')
    (components.artifact_store.root / 'a.bin').write_bytes(b'a')

    response = client.get('/files')
    assert response.status_code == 200
    data = response.json()
    assert data['code'] == 0
    assert [entry['name'] for entry in data['data']] == ['a.bin', 'b.bin']
    assert [entry['size'] for entry in data['data']] == [1, 2]


def test_upload_status(client):
    upload_abc(client)

    response = client.get('/upload/H1')
    assert response.status_code == 200
    data = response.json()
    assert data['fileHash'] == 'H1'
    assert data['chunks'] == ['0-a', '1-b', '2-c']
    assert data['chunkCount'] == 3
    assert data['bytesReceived'] == 6


def test_upload_status_unknown_upload(client):
    response = client.get('/upload/unknown')
    assert response.status_code == 404
    assert response.json()['kind'] == 'NOT_FOUND'


def test_merge_without_chunks(client, components):
    response = client.post('/merge', json={'fileHash': 'H1', 'fileName': 'final.bin', 'size': 6})
    assert response.status_code == 400
    data = response.json()
    assert data['code'] == 1
    assert data['kind'] == 'NO_CHUNKS'
    assert data['message']
    assert not (components.artifact_store.root / 'final.bin').exists()


def test_merge_size_mismatch(client):
    upload(client, 'H1', '0-a', b'AA')

    response = client.post('/merge', json={'fileHash': 'H1', 'fileName': 'final.bin', 'size': 6})
    assert response.status_code == 409
    assert response.json()['kind'] == 'SIZE_MISMATCH'


def test_merge_in_progress_rejected(client, components):
    upload(client, 'H1', '0-a', b'AA')
    components.merge_locks.try_acquire('H1')

    response = client.post('/merge', json={'fileHash': 'H1', 'fileName': 'final.bin'})
    assert response.status_code == 409
    assert response.json()['kind'] == 'MERGE_IN_PROGRESS'

    components.merge_locks.release('H1')
    response = client.post('/merge', json={'fileHash': 'H1', 'fileName': 'final.bin'})
    assert response.status_code == 200


def test_merge_missing_fields(client):
    response = client.post('/merge', json={'fileName': 'final.bin'})
    assert response.status_code == 400
    data = response.json()
    assert data['code'] == 1
    assert data['kind'] == 'VALIDATION_ERROR'
    assert 'fileHash' in data['message']


def test_merge_rejects_path_traversal(client):
    upload(client, 'H1', '0-a', b'AA')

    response = client.post('/merge', json={'fileHash': 'H1', 'fileName': '../escape.bin'})
    assert response.status_code == 400
    assert response.json()['kind'] == 'VALIDATION_ERROR'


def test_upload_missing_chunk_key(client):
    response = client.post('/upload', files={'chunk': ('c', b'AA')}, data={'fileHash': 'H1'})
    assert response.status_code == 400
    assert response.json()['kind'] == 'VALIDATION_ERROR'


def test_upload_malformed_chunk_key(client):
    response = upload(client, 'H1', 'no-index', b'AA')
    assert response.status_code == 400
    assert response.json()['kind'] == 'VALIDATION_ERROR'


def test_upload_chunk_too_large(client, components):
    response = upload(client, 'H1', '0-a', b'x' * 2048)
    assert response.status_code == 413
    assert response.json()['kind'] == 'CHUNK_TOO_LARGE'
    assert not components.chunk_store.container_exists('H1')


def test_upload_chunk_too_large_rejected_before_read(client, components, monkeypatch):
    from starlette.datastructures import UploadFile

    async def fail_read(self, size=-1):
        raise AssertionError("oversized chunk was read")

    monkeypatch.setattr(UploadFile, 'read', fail_read)

    response = upload(client, 'H1', '0-a', b'x' * 2048)
    assert response.status_code == 413
    assert response.json()['kind'] == 'CHUNK_TOO_LARGE'


def test_verify_arbitrary_hash_reports_details(client, components):
    upload_abc(client)
    client.post('/merge', json={'fileHash': 'H1', 'fileName': 'final.bin', 'size': 6})

    response = client.post('/verify', json={'fileHash': 'abc/def==', 'fileName': 'final.bin'})
    assert response.status_code == 200
    body = response.json()
    assert body['verified'] is False
    assert body['details'] == {
        'expected': 'abc/def==',
        'actual': hashlib.md5(b'AABBCC').hexdigest(),
    }


def test_verify_missing_artifact(client):
    response = client.post('/verify', json={'fileHash': 'abc', 'fileName': 'missing.bin'})
    assert response.status_code == 404
    assert response.json()['kind'] == 'NOT_FOUND'
