"""
Tests for output formatting.
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from analyzer import analyze
from conversation import ConversationEntry, normalize_conversation
from formatting import (
    format_analysis,
    format_related_sessions,
    format_search_results,
    format_session_detail,
    format_sessions,
    format_similar_problems,
    format_timestamp,
    format_workspaces,
    preview,
)
from history_store import WorkspaceInfo
from search import SearchResult, SimilarProblem
from sessions import SessionDetail, SessionSummary


def sample_analysis():
    data = normalize_conversation(prompts=[
        {'text': 'building a React chat app with TypeScript, fixed a bug with websockets', 'unixMs': 1000},
    ])
    return analyze('ws1', data, [])


def sample_result(**overrides):
    values = dict(
        workspace_id='ws1',
        conversation_id='g-1',
        timestamp_ms=1700000000000,
        type='solution',
        content='fixed the react error',
        relevance_score=0.75,
        context_snippet='fixed the react error',
        matching_terms=['react', 'error'],
    )
    values.update(overrides)
    return SearchResult(**values)


class TestAnalysisFormatting:
    """Test analysis rendering."""

    def test_text(self):
        output = format_analysis(sample_analysis())

        assert 'React Bug Fix/Debugging' in output
        assert 'Problems Solved:' in output
        assert '• A Bug With Websockets' in output
        assert 'Confidence: 100%' in output

    def test_markdown(self):
        output = format_analysis(sample_analysis(), 'markdown')

        assert output.startswith('# React Bug Fix/Debugging')
        assert '## Problems Solved' in output
        assert '- A Bug With Websockets' in output

    def test_json_round_trips_fields(self):
        payload = json.loads(format_analysis(sample_analysis(), 'json'))

        assert payload['smart_label'] == 'React Bug Fix/Debugging'
        assert payload['time_investment']['sessions_count'] == 1


class TestResultFormatting:
    """Test search, problem and session rendering."""

    def test_search_results(self):
        output = format_search_results([sample_result()], 'react error')

        assert 'Found 1 relevant conversations (1 solution):' in output
        assert 'SOLUTION (75% relevance)' in output
        assert 'ID: g-1' in output

    def test_search_markdown_bolds_headers(self):
        output = format_search_results([sample_result()], 'react error', 'markdown')
        assert '**1. SOLUTION (75% relevance)**' in output

    def test_empty_results(self):
        assert format_search_results([], 'x') == 'No conversations found matching "x".'
        assert format_similar_problems([], 'y') == 'No similar problems found for: "y".'
        assert format_related_sessions([], 'z') == 'No sessions related to "z".'
        assert format_workspaces([]) == 'No Cursor workspaces found.'

    def test_similar_problem_truncates_long_text(self):
        problem = SimilarProblem(
            workspace_id='ws1',
            problem_description='error ' * 100,
            solution_approach='No solution found',
            success=False,
            relevance_score=0.5,
            conversation_link='',
        )

        output = format_similar_problems([problem], 'error')

        assert '❓ Problem (50% similar)' in output
        assert 'Technologies: Not specified' in output
        assert 'Conversation ID' not in output
        assert '...' in output

    def test_json_list(self):
        payload = json.loads(format_search_results([sample_result()], 'q', 'json'))
        assert payload[0]['matching_terms'] == ['react', 'error']

    def test_workspaces(self):
        workspaces = [WorkspaceInfo('abc123', '/x/state.vscdb', '/home/me/proj', '2024-01-02T03:04:05')]
        output = format_workspaces(workspaces)

        assert 'abc123' in output
        assert 'proj' in output
        assert '2024-01-02 03:04' in output


def sample_summary(**overrides):
    values = dict(
        composer_id='c-1',
        name='Login form',
        created_at=1700000000000,
        last_activity=1700003600000,
        duration='1h 0m',
        prompt_count=2,
        generation_count=3,
        code_changes=1,
        status='Completed',
        activity_level='Medium',
        top_topics=['login', 'form'],
    )
    values.update(overrides)
    return SessionSummary(**values)


class TestSessionFormatting:
    """Test session list and detail rendering."""

    def test_session_list(self):
        output = format_sessions([sample_summary()], 'ws1')

        assert 'Composer Sessions (1 sessions)' in output
        assert '✅ Completed | 🔥 Medium | Duration: 1h 0m' in output
        assert '2 prompts, 3 responses, 1 code changes' in output
        assert 'Topics: login, form' in output

    def test_session_list_markdown(self):
        output = format_sessions([sample_summary()], 'ws1', 'markdown')
        assert output.startswith('# Composer Sessions')
        assert '**1. Login form**' in output

    def test_no_sessions(self):
        assert format_sessions([], 'ws1') == 'No composer sessions found in workspace ws1.'

    def test_session_detail(self):
        entries = [
            ConversationEntry('add the login form', 1700000000000, 'prompt', 'g-1'),
            ConversationEntry('c-1 wrote LoginForm.tsx', 1700000100000, 'generation', 'g-1', 'apply'),
        ]
        detail = SessionDetail(sample_summary(), ['login', 'form'], entries, 'agent', 'edit')

        output = format_session_detail(detail)

        assert output.startswith('🎯 Login form')
        assert 'Mode: agent (force: edit)' in output
        assert 'Recent Code Changes:' in output
        assert '👤' in output and '🤖' in output

    def test_session_detail_json(self):
        detail = SessionDetail(sample_summary(), [], [])
        payload = json.loads(format_session_detail(detail, 'json'))

        assert payload['summary']['status'] == 'Completed'
        assert payload['entries'] == []


class TestHelpers:
    """Test small helpers."""

    def test_timestamp_never(self):
        assert format_timestamp(None) == 'never'

    def test_timestamp_out_of_range(self):
        assert format_timestamp(10 ** 20) == 'unknown'

    def test_analysis_with_corrupt_timestamp_still_renders(self):
        data = normalize_conversation(prompts=[{'text': 'hi there', 'unixMs': 10 ** 20}])
        output = format_analysis(analyze('ws', data, []))
        assert 'Last Activity: unknown' in output

    def test_preview(self):
        assert preview('abc', 2) == 'ab...'
        assert preview('abc', 5) == 'abc'
