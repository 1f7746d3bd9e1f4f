"""
Tests for composer session browsing.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from conversation import ConversationEntry, SessionConversation, SessionRecord
from sessions import (
    calculate_activity_level,
    describe_session,
    determine_session_status,
    format_duration,
    list_sessions,
    summarize_session,
)

NOW = 1700000000000
HOUR = 60 * 60 * 1000
DAY = 24 * HOUR


def prompt(text, ts, uuid=''):
    return ConversationEntry(text, ts, 'prompt', uuid)


def generation(text, ts, subtype='composer', uuid=''):
    return ConversationEntry(text, ts, 'generation', uuid, subtype)


def conversation(composer_id, created_at, last_updated_at, entries=(), name=''):
    return SessionConversation(
        session=SessionRecord(composer_id, name, created_at, last_updated_at),
        entries=list(entries),
    )


class TestFormatDuration:
    """Test human readable durations."""

    def test_minutes_only(self):
        assert format_duration(0) == '0m'
        assert format_duration(45 * 60 * 1000) == '45m'

    def test_hours_and_minutes(self):
        assert format_duration(3 * HOUR + 12 * 60 * 1000) == '3h 12m'

    def test_negative_is_zero(self):
        assert format_duration(-HOUR) == '0m'


class TestSessionStatus:
    """Test Active / Completed / Abandoned."""

    def test_idle_over_thirty_days_is_abandoned(self):
        entries = [generation('all done', NOW - 31 * DAY, 'apply')]
        assert determine_session_status(entries, 1, NOW - 31 * DAY, now=NOW) == 'Abandoned'

    def test_completion_words_with_code_changes(self):
        entries = [generation('Deployed the fix', NOW - 10 * DAY, 'apply')]
        assert determine_session_status(entries, 1, NOW - 10 * DAY, now=NOW) == 'Completed'

    def test_completion_words_need_code_changes(self):
        entries = [prompt('is it done yet', NOW - DAY)]
        assert determine_session_status(entries, 0, NOW - DAY, now=NOW) == 'Active'

    def test_recent_activity_is_active(self):
        entries = [prompt('add a login page', NOW - 2 * DAY)]
        assert determine_session_status(entries, 0, NOW - 2 * DAY, now=NOW) == 'Active'

    def test_recent_entry_keeps_session_active(self):
        entries = [prompt('add a login page', NOW - DAY)]
        assert determine_session_status(entries, 0, NOW - 10 * DAY, now=NOW) == 'Active'

    def test_quiet_for_a_week_is_abandoned(self):
        entries = [prompt('add a login page', NOW - 10 * DAY)]
        assert determine_session_status(entries, 0, NOW - 10 * DAY, now=NOW) == 'Abandoned'

    def test_defaults_to_current_time(self):
        assert determine_session_status([], 0, 1) == 'Abandoned'


class TestActivityLevel:
    """Test entry and code change density."""

    def test_zero_duration_is_low(self):
        assert calculate_activity_level(50, 50, 10, 0) == 'Low'

    def test_high_conversation_density(self):
        assert calculate_activity_level(10, 1, 0, 1) == 'High'

    def test_high_code_change_density(self):
        assert calculate_activity_level(0, 0, 3, 1) == 'High'

    def test_medium(self):
        assert calculate_activity_level(3, 3, 0, 1) == 'Medium'
        assert calculate_activity_level(0, 0, 2, 1) == 'Medium'

    def test_thresholds_are_strict(self):
        assert calculate_activity_level(3, 2, 1, 1) == 'Low'


class TestDescribeSession:
    """Test the per-session detail."""

    @pytest.fixture
    def docker_session(self):
        return conversation('c1', NOW - 2 * HOUR, NOW - HOUR, [
            prompt('deploy the docker container', NOW - 2 * HOUR, 'g-1'),
            generation('c1 updated docker compose file', NOW - 90 * 60 * 1000, 'apply', 'g-1'),
            generation('c1 explained docker volumes', NOW - HOUR),
        ])

    def test_counts_and_metadata(self, docker_session):
        detail = describe_session(docker_session, now=NOW)
        summary = detail.summary

        assert summary.name == 'Untitled Session'
        assert summary.prompt_count == 1
        assert summary.generation_count == 2
        assert summary.code_changes == 1
        assert summary.duration == '1h 0m'
        assert summary.status == 'Active'
        assert summary.activity_level == 'Low'
        assert detail.unified_mode == 'unknown'
        assert [e.text for e in detail.code_change_entries] == ['c1 updated docker compose file']

    def test_topics(self, docker_session):
        detail = describe_session(docker_session, now=NOW)

        assert detail.topics[0] == 'docker'
        assert detail.summary.top_topics == ['docker', 'deploy', 'container', 'updated', 'compose']

    def test_summarize_matches_detail(self, docker_session):
        assert summarize_session(docker_session, now=NOW) == describe_session(docker_session, now=NOW).summary

    def test_empty_session(self):
        summary = summarize_session(conversation('c9', NOW, NOW, name='Idea'), now=NOW)

        assert summary.name == 'Idea'
        assert summary.top_topics == []
        assert summary.activity_level == 'Low'
        assert summary.status == 'Active'


class TestListSessions:
    """Test sorting and limiting."""

    @pytest.fixture
    def conversations(self):
        return [
            # oldest, longest, busiest
            conversation('old', NOW - 10 * DAY, NOW - 5 * DAY, [
                prompt('one', NOW - 6 * DAY), prompt('two', NOW - 6 * DAY),
                generation('three', NOW - 6 * DAY, 'apply'),
            ]),
            conversation('new', NOW - DAY, NOW - HOUR, [prompt('four', NOW - HOUR)]),
            conversation('mid', NOW - 3 * DAY, NOW - 2 * DAY),
        ]

    def ids(self, summaries):
        return [s.composer_id for s in summaries]

    def test_modified_is_default(self, conversations):
        assert self.ids(list_sessions(conversations, now=NOW)) == ['new', 'mid', 'old']

    def test_created(self, conversations):
        assert self.ids(list_sessions(conversations, 'created', now=NOW)) == ['new', 'mid', 'old']

    def test_activity_weights_code_changes(self, conversations):
        summaries = list_sessions(conversations, 'activity', now=NOW)

        assert self.ids(summaries) == ['old', 'new', 'mid']
        assert summaries[0].activity_score == 5

    def test_duration(self, conversations):
        assert self.ids(list_sessions(conversations, 'duration', now=NOW)) == ['old', 'mid', 'new']

    def test_limit(self, conversations):
        assert self.ids(list_sessions(conversations, limit=1, now=NOW)) == ['new']
        assert len(list_sessions(conversations, limit=None, now=NOW)) == 3

    def test_ties_keep_stored_order(self):
        same = [conversation(cid, NOW, NOW) for cid in ('b', 'a', 'c')]
        assert self.ids(list_sessions(same, 'activity', now=NOW)) == ['b', 'a', 'c']

    def test_invalid_sort_key(self, conversations):
        with pytest.raises(ValueError, match='Invalid sort key'):
            list_sessions(conversations, 'alphabetical')
