#!/usr/bin/env python3
"""
ChatTrail Server
Runs in the background to answer analysis and search requests via Unix socket IPC
"""

import argparse
import json
import logging
import os
import signal
import socket
import sys
import threading
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional

from analyzer import analyze
from config_manager import ConfigManager
from constants import DEFAULT_SEARCH_TYPE, DEFAULT_SESSION_SORT
from history_store import HistoryStore, SessionNotFoundError, WorkspaceNotFoundError
from search import find_related_sessions, find_similar_problems, search_conversations
from sessions import describe_session, list_sessions

logger = logging.getLogger(__name__)

ACCEPT_TIMEOUT = 1.0  # seconds


class ChatTrailServer:
    """
    Background server that handles analysis and search requests
    Communicates via Unix socket for low-latency IPC
    """

    def __init__(
        self,
        config: ConfigManager,
        socket_path: Optional[str] = None,
        store: Optional[HistoryStore] = None
    ):
        self.config = config
        self.store = store or HistoryStore(config.workspace_dirs())
        self.socket_path = str(socket_path or config.get('server.socket_path'))
        self.pid_file = Path(self.socket_path + ".pid")
        self.running = False
        self.server_socket = None
        self.shutdown_requested = False

        # Statistics
        self.stats = {
            'started_at': datetime.now().isoformat(),
            'requests_handled': 0,
            'errors': 0
        }
        self._stats_lock = threading.Lock()

    def start(self):
        """Start the server"""
        # Check if already running
        if self.pid_file.exists():
            try:
                with open(self.pid_file, 'r') as f:
                    old_pid = int(f.read().strip())

                # Check if process exists
                os.kill(old_pid, 0)
                print(f"Server already running with PID {old_pid}")
                sys.exit(1)
            except (OSError, ValueError):
                # Process doesn't exist, remove stale PID file
                self.pid_file.unlink()

        # Write PID file
        with open(self.pid_file, 'w') as f:
            f.write(str(os.getpid()))

        print(f"🔎 ChatTrail Server starting (PID {os.getpid()})...")

        # Setup signal handlers
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        # Create Unix socket
        self._setup_socket()

        # Start listening
        self.running = True
        print(f"✓ Server listening on {self.socket_path}")
        self._listen()

        # Reached after a shutdown request
        self.stop()

    def _setup_socket(self):
        """Setup Unix domain socket"""
        # Remove existing socket file if it exists
        if os.path.exists(self.socket_path):
            os.remove(self.socket_path)

        self.server_socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.server_socket.bind(self.socket_path)
        self.server_socket.listen(5)
        # accept() wakes periodically to notice a shutdown request
        self.server_socket.settimeout(ACCEPT_TIMEOUT)

        # Set permissions
        os.chmod(self.socket_path, 0o600)

    def _listen(self):
        """Main server loop"""
        while self.running:
            try:
                client_socket, _ = self.server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self.running:  # Only log if not shutting down
                    logger.error("Error accepting connection: %s", e)
                    self._count('errors')
                continue

            # Handle request in thread for concurrency
            thread = threading.Thread(
                target=self._handle_client,
                args=(client_socket,)
            )
            thread.daemon = True
            thread.start()

    def _count(self, key: str):
        with self._stats_lock:
            self.stats[key] += 1

    def _handle_client(self, client_socket: socket.socket):
        """Handle a client request"""
        try:
            # Read request (JSON)
            data = b''
            while True:
                chunk = client_socket.recv(4096)
                if not chunk:
                    break
                data += chunk
                # Simple protocol: newline-terminated JSON
                if b'\n' in chunk:
                    break

            if not data:
                return

            try:
                request = json.loads(data.decode('utf-8'))
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                response = {'status': 'error', 'error': f'Invalid request: {e}'}
            else:
                response = self._process_request(request)

            if response['status'] == 'error':
                self._count('errors')

            # Send response
            response_json = json.dumps(response) + '\n'
            client_socket.sendall(response_json.encode('utf-8'))

            self._count('requests_handled')

        except OSError as e:
            logger.warning("Client connection failed: %s", e)
            self._count('errors')

        finally:
            client_socket.close()

        if self.shutdown_requested:
            self._close()

    def _process_request(self, request: Any) -> Dict[str, Any]:
        """Process a client request, converting failures into error responses"""
        if not isinstance(request, dict):
            return {'status': 'error', 'error': 'Request must be a JSON object'}

        try:
            return self._dispatch(request)
        except (WorkspaceNotFoundError, SessionNotFoundError, ValueError) as e:
            return {'status': 'error', 'error': str(e)}
        except Exception as e:
            logger.exception("Request %s failed", request.get('action'))
            return {'status': 'error', 'error': str(e)}

    def _dispatch(self, request: Dict[str, Any]) -> Dict[str, Any]:
        action = request.get('action')

        if action == 'ping':
            return {
                'status': 'success',
                'message': 'pong',
                'uptime': (datetime.now() - datetime.fromisoformat(self.stats['started_at'])).total_seconds()
            }

        elif action == 'get_stats':
            with self._stats_lock:
                server_stats = dict(self.stats)
            return {
                'status': 'success',
                'server_stats': server_stats,
                'storage_dirs': [str(d) for d in self.store.storage_dirs]
            }

        elif action == 'list_workspaces':
            return {
                'status': 'success',
                'workspaces': [asdict(w) for w in self.store.discover_workspaces()]
            }

        elif action == 'analyze':
            workspace_id = _required(request, 'workspace_id')
            analysis = analyze(
                workspace_id,
                self.store.fetch_conversation_data(workspace_id),
                self.store.fetch_session_metadata(workspace_id)
            )
            return {
                'status': 'success',
                'analysis': asdict(analysis)
            }

        elif action == 'search':
            workspace_id = _required(request, 'workspace_id')
            results = search_conversations(
                self.store.fetch_conversation_data(workspace_id),
                _required(request, 'query'),
                search_type=request.get('search_type', DEFAULT_SEARCH_TYPE),
                limit=request.get('limit', self.config.get('search.default_limit')),
                min_score=self.config.get('search.min_relevance'),
                workspace_id=workspace_id
            )
            return {
                'status': 'success',
                'results': [asdict(r) for r in results]
            }

        elif action == 'similar_problems':
            workspace_id = _required(request, 'workspace_id')
            problems = find_similar_problems(
                self.store.fetch_conversation_data(workspace_id),
                _required(request, 'description'),
                limit=request.get('limit', self.config.get('search.default_limit')),
                min_similarity=self.config.get('search.min_problem_similarity'),
                workspace_id=workspace_id
            )
            return {
                'status': 'success',
                'problems': [asdict(p) for p in problems]
            }

        elif action == 'related_sessions':
            workspace_id = _required(request, 'workspace_id')
            related = find_related_sessions(
                _required(request, 'text'),
                self.store.fetch_session_conversations(workspace_id),
                min_similarity=self.config.get('search.min_similarity')
            )
            return {
                'status': 'success',
                'sessions': [asdict(s) for s in related]
            }

        elif action == 'list_sessions':
            workspace_id = _required(request, 'workspace_id')
            summaries = list_sessions(
                self.store.fetch_session_conversations(workspace_id),
                sort_by=request.get('sort_by', DEFAULT_SESSION_SORT),
                limit=request.get('limit')
            )
            return {
                'status': 'success',
                'sessions': [asdict(s) for s in summaries]
            }

        elif action == 'get_session':
            conversation = self.store.fetch_session(
                _required(request, 'workspace_id'),
                _required(request, 'composer_id')
            )
            return {
                'status': 'success',
                'session': asdict(describe_session(conversation))
            }

        elif action == 'shutdown':
            # Socket is closed once this response has been sent
            self.running = False
            self.shutdown_requested = True
            return {
                'status': 'success',
                'message': 'shutting down'
            }

        else:
            return {
                'status': 'error',
                'error': f'Unknown action: {action}'
            }

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        print(f"\n🛑 Received signal {signum}, shutting down...")
        self.stop()
        sys.exit(0)

    def _close(self):
        if self.server_socket:
            self.server_socket.close()

        # Client threads and the main loop may both get here
        Path(self.socket_path).unlink(missing_ok=True)
        self.pid_file.unlink(missing_ok=True)

    def stop(self):
        """Stop the server gracefully"""
        self.running = False
        self._close()
        print(f"✓ Server stopped (handled {self.stats['requests_handled']} requests)")


def _required(request: Dict[str, Any], key: str) -> Any:
    value = request.get(key)
    if value in (None, ''):
        raise ValueError(f"Missing required field: {key}")
    return value


class ChatTrailClientError(Exception):
    """The server answered with an error or could not be reached"""


class ChatTrailClient:
    """
    Client for communicating with the ChatTrail server
    """

    def __init__(self, socket_path: str):
        self.socket_path = socket_path

    def _send_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Send a request to the server and get response"""
        try:
            # Connect to server
            client_socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            client_socket.connect(self.socket_path)

            # Send request
            request_json = json.dumps(request) + '\n'
            client_socket.sendall(request_json.encode('utf-8'))

            # Receive response
            data = b''
            while True:
                chunk = client_socket.recv(4096)
                if not chunk:
                    break
                data += chunk
                if b'\n' in chunk:
                    break

            response = json.loads(data.decode('utf-8'))
            client_socket.close()

            return response

        except (OSError, ValueError) as e:
            return {
                'status': 'error',
                'error': f'Failed to communicate with server: {e}'
            }

    def _call(self, request: Dict[str, Any], field: str) -> Any:
        response = self._send_request(request)
        if response.get('status') == 'success':
            return response[field]
        raise ChatTrailClientError(response.get('error', 'Unknown error'))

    def list_workspaces(self) -> List[Dict[str, Any]]:
        return self._call({'action': 'list_workspaces'}, 'workspaces')

    def analyze(self, workspace_id: str) -> Dict[str, Any]:
        """Analysis of one workspace, as a dict"""
        return self._call({'action': 'analyze', 'workspace_id': workspace_id}, 'analysis')

    def search(
        self,
        workspace_id: str,
        query: str,
        search_type: str = DEFAULT_SEARCH_TYPE,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        request = {
            'action': 'search',
            'workspace_id': workspace_id,
            'query': query,
            'search_type': search_type
        }
        if limit is not None:
            request['limit'] = limit
        return self._call(request, 'results')

    def similar_problems(self, workspace_id: str, description: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        request = {'action': 'similar_problems', 'workspace_id': workspace_id, 'description': description}
        if limit is not None:
            request['limit'] = limit
        return self._call(request, 'problems')

    def related_sessions(self, workspace_id: str, text: str) -> List[Dict[str, Any]]:
        return self._call({'action': 'related_sessions', 'workspace_id': workspace_id, 'text': text}, 'sessions')

    def list_sessions(
        self,
        workspace_id: str,
        sort_by: str = DEFAULT_SESSION_SORT,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        request = {'action': 'list_sessions', 'workspace_id': workspace_id, 'sort_by': sort_by}
        if limit is not None:
            request['limit'] = limit
        return self._call(request, 'sessions')

    def get_session(self, workspace_id: str, composer_id: str) -> Dict[str, Any]:
        """Full detail of one composer session, as a dict"""
        return self._call(
            {'action': 'get_session', 'workspace_id': workspace_id, 'composer_id': composer_id},
            'session'
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get server statistics"""
        return self._call({'action': 'get_stats'}, 'server_stats')

    def ping(self) -> bool:
        """Check if server is running"""
        response = self._send_request({'action': 'ping'})
        return response.get('status') == 'success'

    def shutdown(self):
        """Shutdown the server"""
        self._call({'action': 'shutdown'}, 'message')


def main(argv=None):
    """Main entry point for server"""
    config = ConfigManager()
    default_socket = config.get('server.socket_path')

    parser = argparse.ArgumentParser(description='ChatTrail Server')
    parser.add_argument(
        'command',
        choices=['start', 'stop', 'status'],
        help='Server command'
    )
    parser.add_argument(
        '--socket',
        default=default_socket,
        help=f'Unix socket path (default: {default_socket})'
    )

    args = parser.parse_args(argv)

    if args.command == 'start':
        logging.basicConfig(
            level=getattr(logging, str(config.get('logging.level', 'WARNING')).upper(), logging.WARNING),
            format='%(asctime)s %(levelname)s %(name)s: %(message)s'
        )
        server = ChatTrailServer(config, socket_path=args.socket)
        server.start()

    elif args.command == 'stop':
        client = ChatTrailClient(socket_path=args.socket)
        try:
            client.shutdown()
            print("✓ Server stopped")
        except ChatTrailClientError as e:
            print(f"Error stopping server: {e}")
            sys.exit(1)

    elif args.command == 'status':
        client = ChatTrailClient(socket_path=args.socket)
        if client.ping():
            stats = client.get_stats()
            print("✓ Server is running")
            print(f"  Socket: {args.socket}")
            print(f"  Requests handled: {stats['requests_handled']}")
            print(f"  Errors: {stats['errors']}")
        else:
            print("✗ Server is not running")
            sys.exit(1)


if __name__ == '__main__':
    main()
