"""
Pattern library for ChatTrail.

Keyword tables used by the classifier and the search scorers. Within a
category the order matters: earlier keywords weigh more
(weight = len(keywords) - index). Category order is the tie-break order
when two labels score the same.

All tables are read-only and compiled once at import time.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple


TECHNOLOGY_PATTERNS = MappingProxyType({
    # Frontend frameworks & libraries
    'React': ('react', 'jsx', 'tsx', 'component', 'usestate', 'useeffect', 'props', 'react-dom', 'create-react-app'),
    'Vue': ('vue', 'vuejs', 'vue.js', 'nuxt', 'composition api', 'reactive', 'ref('),
    'Angular': ('angular', 'ng-', 'typescript', '@angular', '@component', '@injectable'),
    'Svelte': ('svelte', 'sveltekit', '.svelte'),

    # Backend frameworks
    'Node.js': ('nodejs', 'node.js', 'npm', 'package.json', 'express', 'node_modules', 'require(', 'module.exports'),
    'Express': ('express', 'app.listen', 'middleware', 'app.get', 'app.post', 'router'),
    'Django': ('django', 'python', 'models.py', 'views.py', 'urls.py', 'settings.py', 'manage.py'),
    'Flask': ('flask', 'python', 'app.route', '@app.route', 'render_template'),
    'FastAPI': ('fastapi', 'python', 'pydantic', '@app.get', '@app.post', 'uvicorn'),
    'Spring': ('spring', 'java', '@controller', '@service', '@repository', '@autowired'),
    'Next.js': ('nextjs', 'next.js', 'next/image', 'next/router', 'getserversideprops', 'getstaticprops'),

    # Languages
    'TypeScript': ('typescript', '.ts', '.tsx', 'interface', 'type', 'enum', 'namespace', 'tsc'),
    'JavaScript': ('javascript', '.js', '.mjs', 'function', 'const', 'let', 'var', 'arrow function'),
    'Python': ('python', '.py', 'def ', 'import ', 'pip', 'requirements.txt', 'venv', '__init__.py'),
    'Java': ('java', '.java', 'class ', 'public static', 'maven', 'gradle', 'springframework'),
    'C#': ('csharp', 'c#', '.cs', 'using system', 'namespace', '.net', 'visual studio'),
    'Go': ('golang', 'go', '.go', 'func main', 'package main', 'go mod'),
    'Rust': ('rust', '.rs', 'cargo', 'fn main', 'cargo.toml', 'struct', 'impl'),
    'PHP': ('php', '.php', '<?php', 'composer', 'laravel', 'symfony'),

    # Databases
    'MongoDB': ('mongodb', 'mongo', 'mongoose', 'collection', 'aggregation', 'bson'),
    'PostgreSQL': ('postgresql', 'postgres', 'psql', 'pg_', 'pgadmin'),
    'MySQL': ('mysql', 'mariadb', 'mysqldump', 'phpmyadmin'),
    'SQLite': ('sqlite', 'sqlite3', '.db', '.sqlite', 'sqlite_'),
    'Redis': ('redis', 'cache', 'redis-cli', 'redisinsight'),

    # DevOps & tools
    'Docker': ('docker', 'dockerfile', 'container', 'docker-compose', 'image', 'containerization'),
    'Kubernetes': ('kubernetes', 'k8s', 'kubectl', 'pod', 'deployment', 'service', 'namespace'),
    'AWS': ('aws', 'amazon', 'ec2', 's3', 'lambda', 'cloudformation', 'iam', 'vpc'),
    'Azure': ('azure', 'microsoft', 'az cli', 'resource group', 'app service'),
    'Git': ('git', 'github', 'gitlab', 'commit', 'push', 'pull', 'merge', 'branch', 'repository'),

    # Testing
    'Jest': ('jest', 'test', 'expect', 'describe', 'it(', 'beforeeach'),
    'Cypress': ('cypress', 'e2e', 'cy.', 'integration test'),
    'Pytest': ('pytest', 'test_', 'assert', 'fixture', 'conftest.py'),

    # Mobile
    'React Native': ('react native', 'react-native', 'expo', 'metro', 'react-native-cli'),
    'Flutter': ('flutter', 'dart', 'widget', 'pubspec.yaml', 'flutter doctor'),
    'Swift': ('swift', 'ios', 'xcode', 'cocoapods', 'swift package'),
    'Kotlin': ('kotlin', 'android', 'gradle', 'android studio'),

    # AI/ML
    'TensorFlow': ('tensorflow', 'tf.', 'keras', 'tensor', 'neural network'),
    'PyTorch': ('pytorch', 'torch', 'neural', 'tensor', 'autograd'),
    'OpenAI': ('openai', 'gpt', 'chatgpt', 'ai', 'llm', 'language model'),
    'LangChain': ('langchain', 'llm', 'chain', 'agent', 'retrieval'),

    # Editor tooling
    'MCP': ('mcp', 'model context protocol', 'mcp server', 'cursor', 'typescript-mcp'),
    'Cursor': ('cursor', 'cursor ai', 'composer', 'workspace', 'ai assistant'),
})

PROJECT_TYPE_PATTERNS = MappingProxyType({
    'Web Application': ('web app', 'website', 'frontend', 'backend', 'full stack', 'api', 'server', 'client'),
    'Mobile App': ('mobile', 'ios', 'android', 'react native', 'flutter', 'app store', 'mobile development'),
    'DevOps/Tooling': ('devops', 'deployment', 'ci/cd', 'docker', 'kubernetes', 'automation', 'script', 'infrastructure'),
    'Data Analysis': ('data', 'analysis', 'visualization', 'pandas', 'numpy', 'jupyter', 'dataset', 'analytics'),
    'Machine Learning': ('ml', 'ai', 'model', 'training', 'neural', 'tensorflow', 'pytorch', 'deep learning'),
    'Game Development': ('game', 'unity', 'unreal', 'godot', 'pygame', 'gaming'),
    'Desktop Application': ('desktop', 'electron', 'tkinter', 'qt', 'gui', 'desktop app'),
    'Library/Package': ('library', 'package', 'npm', 'pip', 'gem', 'framework', 'sdk', 'component library'),
    'Learning/Tutorial': ('learn', 'tutorial', 'course', 'practice', 'exercise', 'study', 'example'),
    'Bug Fix/Debugging': ('bug', 'fix', 'debug', 'error', 'issue', 'problem', 'troubleshoot'),
    'MCP Development': ('mcp', 'model context protocol', 'mcp server', 'cursor integration', 'tool development'),
    'API Development': ('api', 'rest', 'graphql', 'endpoint', 'microservice', 'web service'),
})

STATUS_PATTERNS = MappingProxyType({
    'Setup': ('setup', 'install', 'initialize', 'create project', 'getting started', 'first time', 'configuration', 'environment'),
    'Active': ('implement', 'add feature', 'working on', 'build', 'develop', 'creating', 'coding', 'writing'),
    'Problem Solving': ('error', 'bug', 'fix', 'debug', 'issue', 'problem', 'stuck', 'help', 'troubleshoot', 'not working'),
    'Documentation': ('document', 'readme', 'comment', 'explain', 'write docs', 'documentation', 'guide'),
    'Complete': ('done', 'finished', 'complete', 'deploy', 'release', 'final', 'production', 'live'),
    'Abandoned': ('abandon', 'stop', 'cancel', 'give up', 'not working', 'switching to'),
})

# Plain substring keyword lists used by the search scorers
SEARCH_TECH_KEYWORDS = (
    'react', 'vue', 'angular', 'typescript', 'javascript', 'python', 'java', 'node.js',
    'express', 'django', 'flask', 'spring', 'mongodb', 'postgresql', 'mysql', 'docker',
    'kubernetes', 'aws', 'azure', 'git', 'github', 'api', 'database', 'frontend',
    'backend', 'fullstack', 'mobile', 'web', 'app', 'development', 'devops', 'ci/cd',
)

PROBLEM_KEYWORDS = (
    'error', 'bug', 'issue', 'problem', 'fix', 'debug', 'troubleshoot', 'broken',
    'not working', 'failed', 'crash', 'exception', 'help', 'stuck', 'resolve',
)

SOLUTION_KEYWORDS = (
    'fix', 'solve', 'solution', 'resolved', 'worked', 'success', 'implement',
    'approach', 'method', 'way to', 'how to', 'tutorial', 'guide', 'steps',
)

TOPIC_STOPWORDS = frozenset({
    'this', 'that', 'they', 'have', 'been', 'will', 'would', 'could', 'should',
    'when', 'where', 'what', 'how', 'with', 'from', 'your', 'mine', 'our',
})

SESSION_STOPWORDS = frozenset({
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of',
    'with', 'by', 'is', 'are', 'was', 'were', 'be', 'been', 'have', 'has', 'had',
    'do', 'does', 'did', 'will', 'would', 'could', 'should', 'can', 'may', 'might',
    'this', 'that', 'these', 'those', 'i', 'you', 'he', 'she', 'it', 'we', 'they',
    'me', 'him', 'her', 'us', 'them',
})

# Words that make a candidate project name too vague to use as a label
GENERIC_LABEL_WORDS = (
    'development', 'project', 'application', 'system', 'tool', 'service',
    'website', 'app', 'code', 'program', 'software', 'script', 'file',
    'this', 'that', 'something', 'anything', 'everything', 'nothing',
    'issue', 'problem', 'error', 'bug', 'help', 'question',
)


@dataclass(frozen=True)
class CompiledTerm:
    """One keyword as a case-insensitive whole-word pattern"""
    term: str
    weight: int
    pattern: re.Pattern

    def count(self, text: str) -> int:
        return len(self.pattern.findall(text))


@dataclass(frozen=True)
class CompiledCategory:
    label: str
    order: int  # declaration index, used as tie-break
    terms: Tuple[CompiledTerm, ...]


def term_pattern(term: str) -> re.Pattern:
    """Literal, word-bounded, case-insensitive pattern for a keyword"""
    return re.compile(r'\b' + re.escape(term) + r'\b', re.IGNORECASE)


def keyword_weights(table: Mapping[str, Tuple[str, ...]], label: str) -> Dict[str, int]:
    """Rank weights of one label's keywords; the first keyword weighs most"""
    keywords = table[label]
    return {kw: len(keywords) - i for i, kw in enumerate(keywords)}


def compile_table(table: Mapping[str, Tuple[str, ...]]) -> Tuple[CompiledCategory, ...]:
    """Compile a pattern table, assigning rank weights"""
    categories = []
    for order, (label, keywords) in enumerate(table.items()):
        weights = keyword_weights(table, label)
        terms = tuple(
            CompiledTerm(term=kw, weight=weights[kw], pattern=term_pattern(kw))
            for kw in keywords
        )
        categories.append(CompiledCategory(label=label, order=order, terms=terms))
    return tuple(categories)


COMPILED_TECHNOLOGIES = compile_table(TECHNOLOGY_PATTERNS)
COMPILED_PROJECT_TYPES = compile_table(PROJECT_TYPE_PATTERNS)
COMPILED_STATUSES = compile_table(STATUS_PATTERNS)


def contains_any(text: str, keywords: Tuple[str, ...]) -> bool:
    """Substring check used by the search scorers (text expected lower-case)"""
    return any(kw in text for kw in keywords)


def keywords_present(text: str, keywords: Tuple[str, ...], limit: int) -> List[str]:
    """Keywords found in text, in table order, at most `limit`"""
    return [kw for kw in keywords if kw in text][:limit]
