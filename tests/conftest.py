"""Test configuration."""

import pytest
from pathlib import Path
from typing import Callable, Iterable, Union
import tempfile

from sdlcaudit.core.config import Config
from sdlcaudit.core.models import AdapterOutcome, AnalysisRequest
from sdlcaudit.core.registry import AdapterSpec


@pytest.fixture(autouse=True)
def no_groq_env(monkeypatch):
    """Tests never pick up a real key from the environment."""
    monkeypatch.delenv('GROQ_API_KEY', raising=False)
    monkeypatch.delenv('GROQ_API', raising=False)


@pytest.fixture(autouse=True)
def no_token_encoder(monkeypatch):
    """Keep tiktoken from downloading encodings during tests."""
    monkeypatch.setattr('sdlcaudit.llm.groq_client._load_encoder', lambda: None)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_groq_api_key(monkeypatch):
    """Mock Groq API key for testing."""
    monkeypatch.setenv('GROQ_API_KEY', 'test-key')


@pytest.fixture
def python_request():
    return AnalysisRequest(
        source_text='import os\n\nPASSWORD = "secret123"\nos.system(input())\n',
        language="python",
    )


@pytest.fixture
def offline_config():
    """Default configuration with every external analyzer disabled."""
    return Config.load_from_dict({
        'static_analysis': {
            'enable_semgrep': False,
            'enable_bandit': False,
            'enable_eslint': False,
            'enable_cppcheck': False,
            'enable_flawfinder': False,
            'enable_pmd': False,
        }
    })


@pytest.fixture
def sample_python_file(temp_dir):
    """Create a sample Python file with security issues."""
    content = '''
import os

# Hardcoded password - security issue
PASSWORD = "secret123"

def unsafe_function(user_input):
    # Command injection vulnerability
    os.system(f"echo {user_input}")
'''

    file_path = temp_dir / "test_code.py"
    file_path.write_text(content)
    return file_path


def stub_spec(adapter_id: str,
              outcome: Union[AdapterOutcome, Callable[[AnalysisRequest], AdapterOutcome]],
              languages: Iterable[str] = ("*",),
              timeout_ms: int = 1000,
              mandatory: bool = False) -> AdapterSpec:
    """Adapter spec backed by a plain Python callable or a fixed outcome."""
    invoke = outcome if callable(outcome) else (lambda request: outcome)
    return AdapterSpec(
        id=adapter_id,
        target_languages=frozenset(languages),
        invoke=invoke,
        timeout_ms=timeout_ms,
        mandatory=mandatory,
    )
