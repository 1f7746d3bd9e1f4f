"""
Tests for the ChatTrail server.
"""

import sys
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config_manager import ConfigManager
from history_store import HistoryStore
from server import ChatTrailClient, ChatTrailClientError, ChatTrailServer


PROMPTS = [
    {'text': 'fix the react error in the login form', 'unixMs': 1000, 'generationUUID': 'g-1'},
]
GENERATIONS = [
    {'textDescription': 'composer c-1 fixed the react login form', 'type': 'apply',
     'unixMs': 2000, 'generationUUID': 'g-1'},
]
COMPOSERS = [{'composerId': 'c-1', 'name': 'Login form', 'createdAt': 500}]


@pytest.fixture
def server(workspace_storage, tmp_path):
    workspace_storage('ws1', prompts=PROMPTS, generations=GENERATIONS, composers=COMPOSERS)
    config = ConfigManager(str(tmp_path / "config.json"))
    return ChatTrailServer(
        config,
        socket_path=str(tmp_path / "test.sock"),
        store=HistoryStore([workspace_storage.path])
    )


class TestServerInitialization:
    """Test server initialization."""

    def test_server_creates_with_config(self, server, tmp_path):
        assert server.socket_path == str(tmp_path / "test.sock")
        assert server.pid_file == tmp_path / "test.sock.pid"
        assert server.running is False

    def test_server_uses_configured_socket_path(self, tmp_path):
        config = ConfigManager(str(tmp_path / "config.json"))
        server = ChatTrailServer(config, store=MagicMock())
        assert server.socket_path == "/tmp/chattrail.sock"

    def test_stats_initialized(self, server):
        assert 'started_at' in server.stats
        assert server.stats['requests_handled'] == 0
        assert server.stats['errors'] == 0


class TestRequestProcessing:
    """Test request processing."""

    def test_ping(self, server):
        response = server._process_request({'action': 'ping'})
        assert response['status'] == 'success'
        assert response['message'] == 'pong'

    def test_get_stats(self, server):
        response = server._process_request({'action': 'get_stats'})
        assert response['server_stats']['requests_handled'] == 0

    def test_list_workspaces(self, server):
        response = server._process_request({'action': 'list_workspaces'})
        assert [w['workspace_id'] for w in response['workspaces']] == ['ws1']

    def test_analyze(self, server):
        response = server._process_request({'action': 'analyze', 'workspace_id': 'ws1'})

        assert response['status'] == 'success'
        assert response['analysis']['smart_label'] == 'Login Form'
        assert response['analysis']['metrics']['code_changes'] == 1

    def test_search(self, server):
        response = server._process_request({
            'action': 'search',
            'workspace_id': 'ws1',
            'query': 'react login',
            'search_type': 'technical',
        })

        assert response['status'] == 'success'
        assert {r['type'] for r in response['results']} == {'prompt', 'solution'}

    def test_similar_problems(self, server):
        response = server._process_request({
            'action': 'similar_problems',
            'workspace_id': 'ws1',
            'description': 'react error',
        })
        assert response['problems'][0]['success'] is True

    def test_related_sessions(self, server):
        response = server._process_request({
            'action': 'related_sessions',
            'workspace_id': 'ws1',
            'text': 'react login form',
        })
        assert response['sessions'][0]['composer_id'] == 'c-1'

    def test_list_sessions(self, server):
        response = server._process_request({'action': 'list_sessions', 'workspace_id': 'ws1'})

        assert response['status'] == 'success'
        session = response['sessions'][0]
        assert session['name'] == 'Login form'
        assert session['code_changes'] == 1
        assert session['status'] == 'Abandoned'

    def test_list_sessions_invalid_sort(self, server):
        response = server._process_request({
            'action': 'list_sessions', 'workspace_id': 'ws1', 'sort_by': 'name'
        })
        assert 'Invalid sort key' in response['error']

    def test_get_session(self, server):
        response = server._process_request({
            'action': 'get_session', 'workspace_id': 'ws1', 'composer_id': 'c-1'
        })

        assert response['session']['summary']['composer_id'] == 'c-1'
        assert [e['id'] for e in response['session']['entries']] == ['g-1', 'g-1']

    def test_get_unknown_session(self, server):
        response = server._process_request({
            'action': 'get_session', 'workspace_id': 'ws1', 'composer_id': 'c-9'
        })
        assert response == {'status': 'error', 'error': 'Composer session c-9 not found in workspace ws1'}

    def test_get_session_requires_composer_id(self, server):
        response = server._process_request({'action': 'get_session', 'workspace_id': 'ws1'})
        assert response['error'] == 'Missing required field: composer_id'

    def test_unknown_action(self, server):
        response = server._process_request({'action': 'dance'})
        assert response['status'] == 'error'
        assert 'Unknown action' in response['error']

    def test_unknown_workspace(self, server):
        response = server._process_request({'action': 'analyze', 'workspace_id': 'nope'})
        assert response == {'status': 'error', 'error': 'Workspace nope not found'}

    def test_missing_field(self, server):
        response = server._process_request({'action': 'search', 'workspace_id': 'ws1'})
        assert response['error'] == 'Missing required field: query'

    def test_invalid_search_type(self, server):
        response = server._process_request({
            'action': 'search', 'workspace_id': 'ws1', 'query': 'x', 'search_type': 'fuzzy'
        })
        assert 'Invalid search type' in response['error']

    def test_non_object_request(self, server):
        assert server._process_request(['ping'])['status'] == 'error'

    def test_unexpected_failure_becomes_error_response(self, server):
        with patch.object(server.store, 'discover_workspaces', side_effect=RuntimeError('disk gone')):
            response = server._process_request({'action': 'list_workspaces'})
        assert response == {'status': 'error', 'error': 'disk gone'}

    def test_shutdown_sets_running_false(self, server):
        server.running = True
        response = server._process_request({'action': 'shutdown'})

        assert response['status'] == 'success'
        assert server.running is False
        assert server.shutdown_requested is True


class TestClient:
    """Test client error handling."""

    def test_unreachable_server(self):
        client = ChatTrailClient(socket_path="/nonexistent.sock")

        response = client._send_request({'action': 'ping'})

        assert response['status'] == 'error'
        assert 'Failed to communicate' in response['error']
        assert client.ping() is False

    def test_calls_raise_on_error(self):
        client = ChatTrailClient(socket_path="/nonexistent.sock")

        with pytest.raises(ChatTrailClientError):
            client.analyze('ws1')
        with pytest.raises(ChatTrailClientError):
            client.get_stats()


@pytest.mark.local_only
class TestSocketRoundTrip:
    """Run the server loop on a real Unix socket."""

    def test_client_round_trip(self, server):
        server._setup_socket()
        server.running = True
        thread = threading.Thread(target=server._listen, daemon=True)
        thread.start()

        client = ChatTrailClient(socket_path=server.socket_path)
        try:
            assert client.ping() is True
            assert client.list_workspaces()[0]['workspace_id'] == 'ws1'
            assert client.search('ws1', 'react login', limit=1)[0]['conversation_id'] == 'g-1'
            assert client.list_sessions('ws1', limit=1)[0]['composer_id'] == 'c-1'
            assert client.get_session('ws1', 'c-1')['summary']['name'] == 'Login form'

            with pytest.raises(ChatTrailClientError, match='not found'):
                client.analyze('nope')
        finally:
            client.shutdown()

        thread.join(timeout=5)
        assert not thread.is_alive()
        assert server.running is False
