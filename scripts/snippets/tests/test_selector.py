"""Tests for snippet selection."""

from scripts.snippets.config import DetectionRule, IntegrationDescriptor, get_default_config
from scripts.snippets.detector import detect
from scripts.snippets.selector import (
    REASON_NO_ENTRIES,
    match_descriptor,
    match_rule,
    select,
)
from scripts.snippets.store import load_default_store


class TestMatchRule:
    """Tests for single rule evaluation."""

    def test_name_only_rule(self):
        rule = DetectionRule(type="package", pattern="convex")
        assert match_rule(rule, {"convex": "^1.2.0"}) == ("convex", "^1.2.0")

    def test_version_constraint_satisfied(self):
        rule = DetectionRule(type="package", pattern="tailwindcss", version_constraint=">=4.0.0")
        assert match_rule(rule, {"tailwindcss": "^4.1.0"}) == ("tailwindcss", "^4.1.0")

    def test_version_constraint_not_satisfied(self):
        rule = DetectionRule(type="package", pattern="tailwindcss", version_constraint=">=4.0.0")
        assert match_rule(rule, {"tailwindcss": "^3.4.0"}) is None

    def test_unresolvable_version_accepted(self):
        """'latest' cannot be checked, so the rule is given the benefit of the doubt."""
        rule = DetectionRule(type="package", pattern="tailwindcss", version_constraint=">=4.0.0")
        assert match_rule(rule, {"tailwindcss": "latest"}) == ("tailwindcss", "latest")

    def test_glob_picks_first_name_in_order(self):
        rule = DetectionRule(type="glob", pattern="@convex-dev/*")
        deps = {"@convex-dev/workpool": "1.0.0", "@convex-dev/auth": "0.0.80"}
        assert match_rule(rule, deps) == ("@convex-dev/auth", "0.0.80")

    def test_match_descriptor_or_semantics(self, descriptors):
        """Any one rule matching is enough."""
        match = match_descriptor(descriptors[0], {"@convex-dev/auth": "^0.0.80"})
        assert match.identifier == "convex"
        assert match.package == "@convex-dev/auth"
        assert match.rule.type == "glob"


class TestSelect:
    """Tests for the selection algorithm."""

    def test_convex_canonical_order(self, sample_store, descriptors):
        """schema, then functions, then crons."""
        result = select(detect({"convex": "^1.2.0"}), sample_store, descriptors)
        assert set(result.matched_integrations) == {"convex"}
        assert result.ids == ["convex/schema", "convex/functions", "convex/crons"]

    def test_empty_manifest_selects_nothing(self, sample_store, descriptors):
        result = select(detect({}), sample_store, descriptors)
        assert result.entries == ()
        assert result.matched_integrations == ()
        assert result.empty_manifest

    def test_version_mismatch_flagged_not_excluded(self, sample_store, descriptors):
        result = select(detect({"svelte": "5.0.0"}), sample_store, descriptors)
        assert result.ids == ["svelte/counter-svelte"]
        assert result.entries[0].version_mismatch is True
        assert result.entries[0].declared_version == "5.0.0"

    def test_compatible_version_not_flagged(self, sample_store, descriptors):
        result = select(detect({"svelte": "^4.2.0"}), sample_store, descriptors)
        assert result.entries[0].version_mismatch is False

    def test_unknown_declared_version_not_flagged(self, sample_store, descriptors):
        result = select(detect({"svelte": "latest"}), sample_store, descriptors)
        assert result.entries[0].version_mismatch is False

    def test_version_package_override(self, sample_store):
        manifest = {"@sveltejs/kit": "2.0.0", "svelte": "4.2.0"}
        rules = (DetectionRule(type="package", pattern="@sveltejs/kit"),)

        by_first_rule = IntegrationDescriptor(identifier="svelte", detection_rules=rules)
        result = select(detect(manifest), sample_store, [by_first_rule])
        assert result.entries[0].declared_version == "2.0.0"
        assert result.entries[0].version_mismatch is True

        explicit = IntegrationDescriptor(
            identifier="svelte", detection_rules=rules, version_package="svelte"
        )
        result = select(detect(manifest), sample_store, [explicit])
        assert result.entries[0].declared_version == "4.2.0"
        assert result.entries[0].version_mismatch is False

    def test_integrations_follow_descriptor_order(self, sample_store, descriptors):
        manifest = {"svelte": "^4.2.0", "better-auth": "^1.0.0", "convex": "^1.2.0"}
        result = select(detect(manifest), sample_store, descriptors)
        assert result.matched_integrations == ("convex", "better-auth", "svelte")
        assert result.ids == [
            "convex/schema",
            "convex/functions",
            "convex/crons",
            "better-auth/auth-server",
            "better-auth/auth-client",
            "svelte/counter-svelte",
        ]

    def test_matched_integration_without_entries_dropped(self, sample_store, descriptors):
        result = select(detect({"tailwindcss": "^4.1.0"}), sample_store, descriptors)
        assert result.matched_integrations == ("tailwind-v4",)
        assert result.entries == ()
        assert len(result.dropped) == 1
        assert result.dropped[0].integration == "tailwind-v4"
        assert result.dropped[0].reason == REASON_NO_ENTRIES

    def test_version_rule_excludes_old_major(self, sample_store, descriptors):
        result = select(detect({"tailwindcss": "^3.4.0"}), sample_store, descriptors)
        assert result.matched_integrations == ()
        assert result.dropped == ()

    def test_unrelated_dependencies_match_nothing(self, sample_store, descriptors):
        result = select(detect({"react": "^18.0.0"}), sample_store, descriptors)
        assert result.entries == ()
        assert not result.empty_manifest

    def test_duplicate_descriptor_deduplicated(self, sample_store, descriptors):
        result = select(
            detect({"convex": "1.0.0"}),
            sample_store,
            descriptors + [descriptors[0]],
        )
        assert result.ids == ["convex/schema", "convex/functions", "convex/crons"]
        assert result.matched_integrations == ("convex",)

    def test_duplicate_descriptor_keeps_first_position(self, sample_store, descriptors):
        """A later descriptor for the same integration ranks at its first declaration."""
        never = IntegrationDescriptor(
            identifier="convex",
            detection_rules=(DetectionRule(type="package", pattern="no-such-package"),),
        )
        ordered = [never, descriptors[2], descriptors[0]]
        result = select(detect({"svelte": "4.0.0", "convex": "1.0.0"}), sample_store, ordered)
        assert result.matched_integrations == ("convex", "svelte")

    def test_fallback_topic_priority(self, sample_store):
        descriptor = IntegrationDescriptor(
            identifier="better-auth",
            detection_rules=(DetectionRule(type="package", pattern="better-auth"),),
        )
        result = select(
            detect({"better-auth": "1.0.0"}),
            sample_store,
            [descriptor],
            topic_priority=["auth-client", "auth-server"],
        )
        assert result.ids == ["better-auth/auth-client", "better-auth/auth-server"]

    def test_unlisted_topics_sort_after_listed_by_id(self, sample_store):
        descriptor = IntegrationDescriptor(
            identifier="convex",
            detection_rules=(DetectionRule(type="package", pattern="convex"),),
            topic_priority=("crons",),
        )
        result = select(detect({"convex": "1.0.0"}), sample_store, [descriptor])
        assert result.ids == ["convex/crons", "convex/functions", "convex/schema"]

    def test_select_is_deterministic(self, sample_store, descriptors):
        """Identical inputs give identical orderings, whatever the manifest key order."""
        a = select(detect({"svelte": "4", "convex": "1", "better-auth": "1"}), sample_store, descriptors)
        b = select(detect({"better-auth": "1", "convex": "1", "svelte": "4"}), sample_store, descriptors)
        c = select(detect({"svelte": "4", "convex": "1", "better-auth": "1"}), sample_store, descriptors)
        assert a.ids == b.ids == c.ids
        assert a == c


class TestSelectWithBundledCatalog:
    """Tests against the bundled corpus and descriptors."""

    def test_sveltekit_convex_project(self):
        config = get_default_config()
        manifest = {
            "convex": "^1.17.0",
            "convex-svelte": "^0.0.11",
            "@sveltejs/kit": "^2.20.0",
            "svelte": "^5.0.0",
            "tailwindcss": "^4.0.0",
            "@tailwindcss/vite": "^4.0.0",
        }
        result = select(detect(manifest), load_default_store(), config.integrations, config.topic_priority)
        assert result.matched_integrations == ("convex", "svelte", "tailwind-v4")
        assert result.ids == [
            "convex/schema",
            "convex/functions",
            "convex/crons",
            "convex/svelte-integration",
            "svelte/remote-functions",
            "svelte/counter-svelte",
            "tailwind-v4/vite-config",
        ]
        assert not any(item.version_mismatch for item in result.entries)

    def test_svelte4_project_flags_runes_examples(self):
        config = get_default_config()
        result = select(
            detect({"svelte": "^4.2.0"}),
            load_default_store(),
            config.integrations,
            config.topic_priority,
        )
        assert [item.version_mismatch for item in result.entries] == [True, True]

    def test_kit_only_project_not_flagged(self):
        """Kit's own version says nothing about the installed svelte."""
        config = get_default_config()
        result = select(
            detect({"@sveltejs/kit": "^2.20.0"}),
            load_default_store(),
            config.integrations,
            config.topic_priority,
        )
        assert result.ids == ["svelte/remote-functions", "svelte/counter-svelte"]
        assert [item.version_mismatch for item in result.entries] == [False, False]
        assert [item.declared_version for item in result.entries] == [None, None]

    def test_kit_match_checks_declared_svelte_version(self):
        config = get_default_config()
        result = select(
            detect({"@sveltejs/kit": "^2.20.0", "svelte": "^4.2.0"}),
            load_default_store(),
            config.integrations,
            config.topic_priority,
        )
        assert [item.declared_version for item in result.entries] == ["^4.2.0", "^4.2.0"]
        assert all(item.version_mismatch for item in result.entries)

    def test_autumn_detected_from_cli_package(self):
        config = get_default_config()
        result = select(detect({"atmn": "^0.0.20"}), load_default_store(), config.integrations)
        assert result.ids == ["autumn/autumn-config"]
