"""Tests for replication parsing, expanding and flattening"""

import pytest

from components import replication
from components.errors import ReplicationConfigurationError

DESTINATION_ARN = "arn:aws:s3:::replica-bucket"


def _raw(**rule_overrides):
    rule = {
        "id": "all",
        "status": "Enabled",
        "destination": {"bucket": DESTINATION_ARN},
    }
    rule.update(rule_overrides)
    return {"role": "arn:aws:iam::123456789012:role/replication", "rules": [rule]}


class TestParse:
    def test_minimal(self):
        config = replication.parse_replication_configuration(_raw())
        assert config.role == "arn:aws:iam::123456789012:role/replication"
        assert config.rules[0].destination == replication.ReplicationDestination(bucket=DESTINATION_ARN)
        assert config.rules[0].filter is None

    def test_list_wrapped_blocks(self):
        raw = [_raw(destination=[{"bucket": DESTINATION_ARN, "storage_class": "GLACIER"}])]
        config = replication.parse_replication_configuration(raw)
        assert config.rules[0].destination.storage_class == "GLACIER"

    def test_full_rule(self):
        raw = _raw(
            priority=2.0,
            filter={"prefix": "logs/", "tags": {"team": "web"}},
            source_selection_criteria={"sse_kms_encrypted_objects": {"enabled": True}},
            destination={
                "bucket": DESTINATION_ARN,
                "account_id": "123456789012",
                "replica_kms_key_id": "kms-key",
                "access_control_translation": {"owner": "Destination"},
            },
        )
        rule = replication.parse_replication_configuration(raw).rules[0]
        assert rule.priority == 2
        assert rule.filter == replication.ReplicationRuleFilter(prefix="logs/", tags={"team": "web"})
        assert rule.source_selection_criteria.sse_kms_encrypted_objects is True
        assert rule.destination.access_control_translation == "Destination"

    def test_missing_configuration(self):
        with pytest.raises(ReplicationConfigurationError, match="is required"):
            replication.parse_replication_configuration(None)

    def test_missing_rules(self):
        with pytest.raises(ReplicationConfigurationError) as excinfo:
            replication.parse_replication_configuration({"role": "r", "rules": []})
        assert excinfo.value.path == "replication_configuration.rules"

    def test_missing_role(self):
        raw = _raw()
        del raw["role"]
        with pytest.raises(ReplicationConfigurationError, match="role"):
            replication.parse_replication_configuration(raw)

    @pytest.mark.parametrize(
        "overrides, path",
        [
            ({"status": "On"}, "replication_configuration.rules[0].status"),
            ({"id": "x" * 256}, "replication_configuration.rules[0].id"),
            ({"prefix": "p" * 1025}, "replication_configuration.rules[0].prefix"),
            ({"priority": "high"}, "replication_configuration.rules[0].priority"),
            ({"destination": None}, "replication_configuration.rules[0].destination"),
            (
                {"destination": {"bucket": "replica-bucket"}},
                "replication_configuration.rules[0].destination.bucket",
            ),
            (
                {"destination": {"bucket": DESTINATION_ARN, "account_id": "123"}},
                "replication_configuration.rules[0].destination.account_id",
            ),
            (
                {"destination": {"bucket": DESTINATION_ARN, "storage_class": "COLD"}},
                "replication_configuration.rules[0].destination.storage_class",
            ),
            (
                {"destination": [{"bucket": DESTINATION_ARN}, {"bucket": DESTINATION_ARN}]},
                "replication_configuration.rules[0].destination",
            ),
            ({"filter": {"tags": ["a"]}}, "replication_configuration.rules[0].filter.tags"),
            (
                {"source_selection_criteria": {"sse_kms_encrypted_objects": {"enabled": "yes"}}},
                "replication_configuration.rules[0].source_selection_criteria"
                ".sse_kms_encrypted_objects.enabled",
            ),
        ],
    )
    def test_rejects_invalid_rule(self, overrides, path):
        with pytest.raises(ReplicationConfigurationError) as excinfo:
            replication.parse_replication_configuration(_raw(**overrides))
        assert excinfo.value.path == path


class TestExpand:
    def test_v1_rule_uses_top_level_prefix(self):
        config = replication.parse_replication_configuration(_raw())
        assert replication.expand_replication_configuration(config) == {
            "Role": "arn:aws:iam::123456789012:role/replication",
            "Rules": [
                {
                    "ID": "all",
                    "Status": "Enabled",
                    "Prefix": "",
                    "Destination": {"Bucket": DESTINATION_ARN},
                }
            ],
        }

    def test_v2_rule_with_prefix_filter(self):
        config = replication.parse_replication_configuration(_raw(filter={"prefix": "logs/"}))
        rule = replication.expand_replication_configuration(config)["Rules"][0]
        assert rule["Filter"] == {"Prefix": "logs/"}
        assert rule["Priority"] == 0
        assert rule["DeleteMarkerReplication"] == {"Status": "Disabled"}
        assert "Prefix" not in rule

    def test_v2_rule_with_tags_uses_and(self):
        config = replication.parse_replication_configuration(
            _raw(priority=5, filter={"prefix": "logs/", "tags": {"b": "2", "a": "1"}})
        )
        rule = replication.expand_replication_configuration(config)["Rules"][0]
        assert rule["Priority"] == 5
        assert rule["Filter"] == {
            "And": {
                "Prefix": "logs/",
                "Tags": [{"Key": "a", "Value": "1"}, {"Key": "b", "Value": "2"}],
            }
        }

    def test_destination_options(self):
        config = replication.parse_replication_configuration(
            _raw(
                destination={
                    "bucket": DESTINATION_ARN,
                    "account_id": "123456789012",
                    "storage_class": "STANDARD_IA",
                    "replica_kms_key_id": "kms-key",
                    "access_control_translation": [{"owner": "Destination"}],
                },
                source_selection_criteria={"sse_kms_encrypted_objects": {"enabled": False}},
            )
        )
        rule = replication.expand_replication_configuration(config)["Rules"][0]
        assert rule["Destination"] == {
            "Bucket": DESTINATION_ARN,
            "Account": "123456789012",
            "StorageClass": "STANDARD_IA",
            "EncryptionConfiguration": {"ReplicaKmsKeyID": "kms-key"},
            "AccessControlTranslation": {"Owner": "Destination"},
        }
        assert rule["SourceSelectionCriteria"] == {
            "SseKmsEncryptedObjects": {"Status": "Disabled"}
        }

    def test_no_id_when_empty(self):
        config = replication.parse_replication_configuration(_raw(id=""))
        assert "ID" not in replication.expand_replication_configuration(config)["Rules"][0]


class TestFlatten:
    def test_and_filter(self):
        api = {
            "Role": "role-arn",
            "Rules": [
                {
                    "ID": "all",
                    "Priority": 1,
                    "Status": "Enabled",
                    "Filter": {"And": {"Prefix": "logs/", "Tags": [{"Key": "k", "Value": "v"}]}},
                    "Destination": {"Bucket": DESTINATION_ARN, "StorageClass": "GLACIER"},
                    "DeleteMarkerReplication": {"Status": "Disabled"},
                }
            ],
        }
        assert replication.flatten_replication_configuration(api) == {
            "role": "role-arn",
            "rules": [
                {
                    "id": "all",
                    "priority": 1,
                    "status": "Enabled",
                    "filter": {"prefix": "logs/", "tags": {"k": "v"}},
                    "destination": {"bucket": DESTINATION_ARN, "storage_class": "GLACIER"},
                }
            ],
        }

    def test_single_tag_filter(self):
        api = {
            "Role": "role-arn",
            "Rules": [
                {
                    "Status": "Enabled",
                    "Filter": {"Tag": {"Key": "k", "Value": "v"}},
                    "Destination": {"Bucket": DESTINATION_ARN},
                }
            ],
        }
        rule = replication.flatten_replication_configuration(api)["rules"][0]
        assert rule["filter"] == {"tags": {"k": "v"}}

    def test_destination_and_criteria(self):
        api = {
            "Role": "role-arn",
            "Rules": [
                {
                    "Status": "Disabled",
                    "Prefix": "docs/",
                    "SourceSelectionCriteria": {"SseKmsEncryptedObjects": {"Status": "Enabled"}},
                    "Destination": {
                        "Bucket": DESTINATION_ARN,
                        "Account": "123456789012",
                        "EncryptionConfiguration": {"ReplicaKmsKeyID": "kms-key"},
                        "AccessControlTranslation": {"Owner": "Destination"},
                    },
                }
            ],
        }
        rule = replication.flatten_replication_configuration(api)["rules"][0]
        assert rule["prefix"] == "docs/"
        assert rule["source_selection_criteria"] == {"sse_kms_encrypted_objects": {"enabled": True}}
        assert rule["destination"] == {
            "bucket": DESTINATION_ARN,
            "account_id": "123456789012",
            "replica_kms_key_id": "kms-key",
            "access_control_translation": {"owner": "Destination"},
        }

    def test_flattened_state_parses_back(self):
        raw = _raw(filter={"prefix": "logs/", "tags": {"k": "v"}}, priority=3)
        config = replication.parse_replication_configuration(raw)
        state = replication.flatten_replication_configuration(
            replication.expand_replication_configuration(config)
        )
        assert replication.parse_replication_configuration(state) == config
