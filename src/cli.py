#!/usr/bin/env python3
"""
ChatTrail CLI
"""

import argparse
import json
import logging
import sys
from typing import Optional

from analyzer import analyze
from config_manager import ConfigManager, OUTPUT_FORMATS
from constants import DEFAULT_SEARCH_TYPE, DEFAULT_SESSION_SORT, SEARCH_TYPES, SESSION_SORT_KEYS
from formatting import (
    format_analysis,
    format_related_sessions,
    format_search_results,
    format_session_detail,
    format_sessions,
    format_similar_problems,
    format_workspaces,
)
from history_store import HistoryStore, SessionNotFoundError, WorkspaceNotFoundError
from search import find_related_sessions, find_similar_problems, search_conversations
from sessions import describe_session, list_sessions


class ChatTrailCLI:
    """Command-line interface for ChatTrail"""

    def __init__(self, config: Optional[ConfigManager] = None, store: Optional[HistoryStore] = None):
        self.config = config or ConfigManager()
        self.store = store or HistoryStore(self.config.workspace_dirs())

    def _format(self, args) -> str:
        return getattr(args, 'format', None) or self.config.output_format()

    def _limit(self, args) -> int:
        limit = getattr(args, 'limit', None)
        return limit if limit is not None else self.config.get('search.default_limit', 10)

    def cmd_workspaces(self, args):
        """List discovered Cursor workspaces"""
        print(format_workspaces(self.store.discover_workspaces(), self._format(args)))

    def cmd_analyze(self, args):
        """Analyze a workspace's conversation history"""
        data = self.store.fetch_conversation_data(args.workspace_id)
        sessions = self.store.fetch_session_metadata(args.workspace_id)

        analysis = analyze(args.workspace_id, data, sessions)
        print(format_analysis(analysis, self._format(args)))

    def cmd_search(self, args):
        """Search a workspace's conversations"""
        data = self.store.fetch_conversation_data(args.workspace_id)
        results = search_conversations(
            data,
            args.query,
            search_type=args.type,
            limit=self._limit(args),
            min_score=self.config.get('search.min_relevance', 0.1),
            workspace_id=args.workspace_id,
        )
        print(format_search_results(results, args.query, self._format(args)))

    def cmd_problems(self, args):
        """Find past problems similar to a description"""
        data = self.store.fetch_conversation_data(args.workspace_id)
        problems = find_similar_problems(
            data,
            args.description,
            limit=self._limit(args),
            min_similarity=self.config.get('search.min_problem_similarity', 0.2),
            workspace_id=args.workspace_id,
        )
        print(format_similar_problems(problems, args.description, self._format(args)))

    def cmd_related(self, args):
        """Find composer sessions related to some text"""
        conversations = self.store.fetch_session_conversations(args.workspace_id)
        related = find_related_sessions(
            args.text,
            conversations,
            min_similarity=self.config.get('search.min_similarity', 0.1),
        )
        print(format_related_sessions(related[:self._limit(args)], args.text, self._format(args)))

    def cmd_sessions(self, args):
        """List composer sessions with status and activity"""
        sessions = list_sessions(
            self.store.fetch_session_conversations(args.workspace_id),
            sort_by=args.sort,
            limit=args.limit,
        )
        print(format_sessions(sessions, args.workspace_id, self._format(args)))

    def cmd_session(self, args):
        """Show one composer session in full"""
        conversation = self.store.fetch_session(args.workspace_id, args.composer_id)
        print(format_session_detail(describe_session(conversation), self._format(args)))

    def cmd_config(self, args):
        """Configure ChatTrail settings"""
        if args.action == 'get':
            value = self.config.get(args.key)
            print(f"{args.key} = {value}")

        elif args.action == 'set':
            # Try to parse value as JSON for complex types
            try:
                value = json.loads(args.value)
            except json.JSONDecodeError:
                value = args.value

            self.config.set(args.key, value)
            print(f"✓ Set {args.key} = {value}")

        elif args.action == 'list':
            print("Current Configuration:")
            print(json.dumps(self.config.config, indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='chattrail',
        description='ChatTrail - insight into your Cursor chat history',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Shared by every command that prints results
    output = argparse.ArgumentParser(add_help=False)
    output.add_argument('--format', choices=OUTPUT_FORMATS, help='Output format (default: from config)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    subparsers.add_parser('workspaces', parents=[output], help='List discovered Cursor workspaces')

    analyze_parser = subparsers.add_parser('analyze', parents=[output], help='Analyze a workspace')
    analyze_parser.add_argument('workspace_id', help='Workspace ID (see "workspaces")')

    search_parser = subparsers.add_parser('search', parents=[output], help='Search workspace conversations')
    search_parser.add_argument('workspace_id', help='Workspace ID')
    search_parser.add_argument('query', help='Search query')
    search_parser.add_argument('--type', choices=SEARCH_TYPES, default=DEFAULT_SEARCH_TYPE, help='Search type')
    search_parser.add_argument('--limit', type=int, help='Max results')

    problems_parser = subparsers.add_parser('problems', parents=[output], help='Find similar past problems')
    problems_parser.add_argument('workspace_id', help='Workspace ID')
    problems_parser.add_argument('description', help='Problem description')
    problems_parser.add_argument('--limit', type=int, help='Max results')

    related_parser = subparsers.add_parser('related', parents=[output], help='Find related composer sessions')
    related_parser.add_argument('workspace_id', help='Workspace ID')
    related_parser.add_argument('text', help='Text describing the topic')
    related_parser.add_argument('--limit', type=int, help='Max results')

    sessions_parser = subparsers.add_parser('sessions', parents=[output], help='List composer sessions')
    sessions_parser.add_argument('workspace_id', help='Workspace ID')
    sessions_parser.add_argument(
        '--sort', choices=SESSION_SORT_KEYS, default=DEFAULT_SESSION_SORT, help='Sort order'
    )
    sessions_parser.add_argument('--limit', type=int, help='Max sessions (default: all)')

    session_parser = subparsers.add_parser('session', parents=[output], help='Show one composer session')
    session_parser.add_argument('workspace_id', help='Workspace ID')
    session_parser.add_argument('composer_id', help='Composer session ID (see "sessions")')

    config_parser = subparsers.add_parser('config', help='Configure ChatTrail settings')
    config_parser.add_argument(
        'action',
        choices=['get', 'set', 'list'],
        help='Config action'
    )
    config_parser.add_argument('key', nargs='?', help='Config key (dot notation)')
    config_parser.add_argument('value', nargs='?', help='Config value')

    return parser


def setup_logging(config: ConfigManager):
    level = str(config.get('logging.level', 'WARNING')).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format='%(levelname)s %(name)s: %(message)s'
    )


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == 'config' and args.action in ('get', 'set') and not args.key:
        parser.error(f"config {args.action} requires a key")
    if args.command == 'config' and args.action == 'set' and args.value is None:
        parser.error("config set requires a value")

    config = ConfigManager()
    setup_logging(config)
    cli = ChatTrailCLI(config=config)

    # Dispatch commands
    command_map = {
        'workspaces': cli.cmd_workspaces,
        'analyze': cli.cmd_analyze,
        'search': cli.cmd_search,
        'problems': cli.cmd_problems,
        'related': cli.cmd_related,
        'sessions': cli.cmd_sessions,
        'session': cli.cmd_session,
        'config': cli.cmd_config,
    }

    handler = command_map.get(args.command)
    if not handler:
        print(f"Unknown command: {args.command}")
        sys.exit(1)

    try:
        handler(args)
    except (WorkspaceNotFoundError, SessionNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
