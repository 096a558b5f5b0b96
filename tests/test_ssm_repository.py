"""Test the SSM Parameter Store history repository."""

import json
from datetime import datetime, timezone

import boto3
import pytest
from botocore.stub import Stubber

from promotion_engine.core.errors import HistoryError
from promotion_engine.core.models import HistoryEntry, HistoryKey
from promotion_engine.infrastructure.aws.ssm_repository import (
    SsmHistoryRepository,
    entry_to_record,
)

KEY = HistoryKey(cluster="prod", service="web-svc")
PARAMETER = "/promotion-engine/history/prod/web-svc"


def entry(revision, day=1):
    return HistoryEntry(
        revision_number=revision,
        message=f"deploy: {revision - 1} -> {revision}",
        timestamp=datetime(2026, 1, day, tzinfo=timezone.utc),
    )


def parameter_response(entries):
    return {
        "Parameter": {
            "Name": PARAMETER,
            "Type": "String",
            "Value": json.dumps([entry_to_record(e) for e in entries]),
            "Version": 1,
        }
    }


@pytest.fixture
def ssm_client():
    return boto3.client(
        "ssm",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(ssm_client):
    with Stubber(ssm_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


class TestSsmHistoryRepository:

    def test_parameter_name(self, ssm_client):
        repo = SsmHistoryRepository(ssm_client, parameter_prefix="custom/prefix/")

        assert repo.parameter_name(KEY) == "/custom/prefix/prod/web-svc"

    def test_parameter_name_from_arns(self, ssm_client):
        key = HistoryKey(
            cluster="arn:aws:ecs:us-east-1:123456789012:cluster/prod",
            service="arn:aws:ecs:us-east-1:123456789012:service/prod/web-svc",
        )

        assert SsmHistoryRepository(ssm_client).parameter_name(key) == PARAMETER

    def test_parameter_name_replaces_rejected_characters(self, ssm_client):
        key = HistoryKey(cluster="prod cluster", service="web:svc")

        assert SsmHistoryRepository(ssm_client).parameter_name(key) == "/promotion-engine/history/prod_cluster/web_svc"

    def test_append_with_arn_cluster(self, ssm_client, stubber):
        key = HistoryKey(cluster="arn:aws:ecs:us-east-1:123456789012:cluster/prod", service="web-svc")
        stubber.add_client_error(
            "get_parameter",
            service_error_code="ParameterNotFound",
            expected_params={"Name": PARAMETER},
        )
        stubber.add_response(
            "put_parameter",
            {"Version": 1},
            {
                "Name": PARAMETER,
                "Value": json.dumps([entry_to_record(entry(2))]),
                "Type": "String",
                "Overwrite": True,
            },
        )

        SsmHistoryRepository(ssm_client).append(key, entry(2))

    def test_append_to_empty_history(self, ssm_client, stubber):
        stubber.add_client_error("get_parameter", service_error_code="ParameterNotFound")
        stubber.add_response(
            "put_parameter",
            {"Version": 1},
            {
                "Name": PARAMETER,
                "Value": json.dumps([entry_to_record(entry(2))]),
                "Type": "String",
                "Overwrite": True,
            },
        )

        SsmHistoryRepository(ssm_client).append(KEY, entry(2))

    def test_append_trims_to_max_entries(self, ssm_client, stubber):
        stubber.add_response("get_parameter", parameter_response([entry(2, 1), entry(3, 2)]), {"Name": PARAMETER})
        stubber.add_response(
            "put_parameter",
            {"Version": 3},
            {
                "Name": PARAMETER,
                "Value": json.dumps([entry_to_record(entry(3, 2)), entry_to_record(entry(4, 3))]),
                "Type": "String",
                "Overwrite": True,
            },
        )

        SsmHistoryRepository(ssm_client, max_entries=2).append(KEY, entry(4, 3))

    def test_latest(self, ssm_client, stubber):
        stubber.add_response("get_parameter", parameter_response([entry(2, 1), entry(3, 2)]))

        latest = SsmHistoryRepository(ssm_client).latest(KEY)

        assert latest == entry(3, 2)

    def test_latest_without_parameter(self, ssm_client, stubber):
        stubber.add_client_error("get_parameter", service_error_code="ParameterNotFound")

        assert SsmHistoryRepository(ssm_client).latest(KEY) is None

    def test_list_entries_newest_first(self, ssm_client, stubber):
        stubber.add_response("get_parameter", parameter_response([entry(2, 1), entry(3, 2), entry(4, 3)]))

        entries = SsmHistoryRepository(ssm_client).list_entries(KEY, limit=2)

        assert [e.revision_number for e in entries] == [4, 3]

    def test_corrupt_parameter(self, ssm_client, stubber):
        stubber.add_response(
            "get_parameter",
            {"Parameter": {"Name": PARAMETER, "Type": "String", "Value": "not json", "Version": 1}},
        )

        with pytest.raises(HistoryError):
            SsmHistoryRepository(ssm_client).latest(KEY)

    def test_write_failure(self, ssm_client, stubber):
        stubber.add_client_error("get_parameter", service_error_code="ParameterNotFound")
        stubber.add_client_error("put_parameter", service_error_code="AccessDeniedException")

        with pytest.raises(HistoryError):
            SsmHistoryRepository(ssm_client).append(KEY, entry(2))

    def test_invalid_max_entries(self, ssm_client):
        with pytest.raises(ValueError):
            SsmHistoryRepository(ssm_client, max_entries=0)
