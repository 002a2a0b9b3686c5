import os
import tempfile

# Isolate every test run from the developer's .env and storage
_TMP = tempfile.mkdtemp(prefix="rbac_chat_tests_")
os.environ["STORAGE_DIR"] = os.path.join(_TMP, "storage")
os.environ["ARTIFACTS_DIR"] = os.path.join(_TMP, "artifacts")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LLM_BASE_URL"] = ""

import pytest

from rbac_chat.config import REGISTRY_PATH
from rbac_chat.inference.base import LLMClient
from rbac_chat.pipeline.compiler import RuleCompiler
from rbac_chat.registry import load_schema_file
from rbac_chat.validation import PolicyValidator


class FakeLLMClient(LLMClient):
    """Returns canned replies in order; an Exception instance is raised instead."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def generate(self, messages, max_tokens=None):
        self.calls.append(messages)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def schema():
    return load_schema_file(REGISTRY_PATH)


@pytest.fixture
def validator(schema):
    return PolicyValidator(schema)


@pytest.fixture
def compiler(validator):
    return RuleCompiler(validator)
