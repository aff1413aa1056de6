"""Shared fixtures for snippet catalog tests."""

import pytest
import yaml

from scripts.snippets.config import DetectionRule, IntegrationDescriptor
from scripts.snippets.store import load


@pytest.fixture
def write_corpus(tmp_path):
    """Return a helper that writes {relative_path: content} under a corpus root."""

    def _write(files, root_name="corpus"):
        root = tmp_path / root_name
        root.mkdir(exist_ok=True)
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, dict):
                content = yaml.dump(content)
            path.write_text(content)
        return root

    return _write


@pytest.fixture
def sample_corpus(write_corpus):
    """A small corpus with three integrations and one version-pinned entry."""
    return write_corpus({
        "convex/assets/crons.example.ts": "export default cronJobs();\n",
        "convex/assets/functions.example.ts": "export const getUser = query({});\n",
        "convex/assets/schema.example.ts": "export default defineSchema({});\n",
        "svelte/assets/counter.svelte.example.ts": "let count = $state(0);\n",
        "svelte/snippets.yaml": {
            "topics": {"counter-svelte": {"compatible_versions": "^4.0.0"}},
        },
        "better-auth/auth-client.example.ts": "createAuthClient();\n",
        "better-auth/auth-server.example.ts": "betterAuth();\n",
        "README.md": "# not an example\n",
    })


@pytest.fixture
def sample_store(sample_corpus):
    return load([sample_corpus])


@pytest.fixture
def descriptors():
    """Descriptors in precedence order: convex, better-auth, svelte, tailwind-v4."""
    return [
        IntegrationDescriptor(
            identifier="convex",
            detection_rules=(
                DetectionRule(type="package", pattern="convex"),
                DetectionRule(type="glob", pattern="@convex-dev/*"),
            ),
            topic_priority=("schema", "functions", "crons"),
        ),
        IntegrationDescriptor(
            identifier="better-auth",
            detection_rules=(DetectionRule(type="package", pattern="better-auth"),),
            topic_priority=("auth-server", "auth-client"),
        ),
        IntegrationDescriptor(
            identifier="svelte",
            detection_rules=(DetectionRule(type="package", pattern="svelte"),),
        ),
        IntegrationDescriptor(
            identifier="tailwind-v4",
            detection_rules=(
                DetectionRule(type="package", pattern="tailwindcss", version_constraint=">=4.0.0"),
            ),
        ),
    ]
