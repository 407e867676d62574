"""Tests for raw record normalization across backend flavors."""

import pytest

from cloud_mock import classic_public_ip, repository_detail, repository_list_item, vpc_public_ip
from provisioner.config import BackendFlavor
from provisioner.errors import MalformedRecordError
from provisioner.models import CommonCode
from provisioner.normalizer import (
    PUBLIC_IP_NORMALIZER,
    PUBLIC_IP_SCHEMA,
    REPOSITORY_NORMALIZER,
    Normalizer,
    flatten_common_code,
)


class TestClassicPublicIp:
    """Tests for the classic public IP variant."""

    def test_associated_ip(self) -> None:
        raw = classic_public_ip(
            "1001",
            "203.0.113.10",
            description="web",
            server_instance_no="9001",
            server_name="web-1",
        )

        record = PUBLIC_IP_NORMALIZER.normalize(raw, BackendFlavor.CLASSIC)

        assert record == {
            "id": "1001",
            "instance_no": "1001",
            "public_ip_no": "1001",
            "public_ip": "203.0.113.10",
            "description": "web",
            "status": "USED",
            "kind_type": "GEN",
            "zone": "KR-1",
            "server_instance_no": "9001",
            "server_name": "web-1",
            "is_associated": True,
        }

    def test_empty_linked_server_is_not_copied(self) -> None:
        """Test that a linked server with empty fields leaves them None."""
        record = PUBLIC_IP_NORMALIZER.normalize(classic_public_ip(), BackendFlavor.CLASSIC)

        assert record["server_instance_no"] is None
        assert record["server_name"] is None
        assert record["is_associated"] is False

    def test_empty_codes_are_omitted(self) -> None:
        """Test that coded sub-objects with empty codes leave the field None."""
        raw = classic_public_ip(status=None, kind_type=None, zone_code=None)

        record = PUBLIC_IP_NORMALIZER.normalize(raw, BackendFlavor.CLASSIC)

        assert record["status"] is None
        assert record["kind_type"] is None
        assert record["zone"] is None

    def test_missing_sub_objects(self) -> None:
        """Test that a record without any relation still has every field."""
        raw = {"publicIpInstanceNo": "1", "publicIp": "203.0.113.1"}

        record = PUBLIC_IP_NORMALIZER.normalize(raw, BackendFlavor.CLASSIC)

        assert set(record) == PUBLIC_IP_SCHEMA.field_names
        assert record["zone"] is None
        assert record["is_associated"] is False


class TestVpcPublicIp:
    """Tests for the VPC public IP variant."""

    def test_associated_ip(self) -> None:
        raw = vpc_public_ip("2001", server_instance_no="8001", server_name="api-1")

        record = PUBLIC_IP_NORMALIZER.normalize(raw, BackendFlavor.VPC)

        assert record["id"] == "2001"
        assert record["public_ip_no"] == "2001"
        assert record["instance_no"] is None
        assert record["status"] == "RUN"
        assert record["server_instance_no"] == "8001"
        assert record["server_name"] == "api-1"
        assert record["is_associated"] is True

    def test_unassociated_ip(self) -> None:
        record = PUBLIC_IP_NORMALIZER.normalize(vpc_public_ip(), BackendFlavor.VPC)

        assert record["server_instance_no"] is None
        assert record["is_associated"] is False
        assert record["zone"] is None
        assert record["kind_type"] is None


class TestCrossFlavor:
    """Properties shared by every flavor."""

    def test_field_sets_are_identical(self) -> None:
        classic = PUBLIC_IP_NORMALIZER.normalize(classic_public_ip(), BackendFlavor.CLASSIC)
        vpc = PUBLIC_IP_NORMALIZER.normalize(vpc_public_ip(), BackendFlavor.VPC)

        assert set(classic) == set(vpc) == PUBLIC_IP_SCHEMA.field_names

    @pytest.mark.parametrize(
        ("raw", "flavor"),
        [
            (classic_public_ip(server_instance_no="1", server_name="a"), BackendFlavor.CLASSIC),
            (vpc_public_ip(server_instance_no="1", server_name="a"), BackendFlavor.VPC),
        ],
    )
    def test_normalization_is_deterministic(self, raw: dict, flavor: BackendFlavor) -> None:
        assert PUBLIC_IP_NORMALIZER.normalize(raw, flavor) == PUBLIC_IP_NORMALIZER.normalize(
            raw, flavor
        )

    def test_malformed_record(self) -> None:
        """Test that a record without its instance number is rejected."""
        with pytest.raises(MalformedRecordError, match="public_ip"):
            PUBLIC_IP_NORMALIZER.normalize({"publicIp": "203.0.113.1"}, BackendFlavor.VPC)

    def test_unknown_flavor_variant(self) -> None:
        normalizer = Normalizer(schema=PUBLIC_IP_SCHEMA, variants={})

        with pytest.raises(ValueError, match="vpc"):
            normalizer.normalize(vpc_public_ip(), BackendFlavor.VPC)

    def test_normalize_all_preserves_order(self) -> None:
        raws = [vpc_public_ip("3"), vpc_public_ip("1"), vpc_public_ip("2")]

        records = PUBLIC_IP_NORMALIZER.normalize_all(raws, BackendFlavor.VPC)

        assert [r["id"] for r in records] == ["3", "1", "2"]


class TestRepository:
    """Tests for the repository variant."""

    def test_detail(self) -> None:
        raw = repository_detail(55, "tf-1234-repo", description="demo", file_safer=True)

        record = REPOSITORY_NORMALIZER.normalize(raw, BackendFlavor.VPC)

        assert record["id"] == "55"
        assert record["name"] == "tf-1234-repo"
        assert record["description"] == "demo"
        assert record["creator"] == "tester"
        assert record["git_https"] == "https://devtools.ncloud.com/1234/tf-1234-repo.git"
        assert record["filesafer"] is True

    def test_same_shape_on_both_flavors(self) -> None:
        raw = repository_detail()

        assert REPOSITORY_NORMALIZER.normalize(
            raw, BackendFlavor.CLASSIC
        ) == REPOSITORY_NORMALIZER.normalize(raw, BackendFlavor.VPC)

    def test_list_item_leaves_detail_fields_empty(self) -> None:
        record = REPOSITORY_NORMALIZER.normalize(
            repository_list_item(repository_detail()), BackendFlavor.VPC
        )

        assert record["name"] == "tf-1234-repo"
        assert record["git_ssh"] is None
        assert record["filesafer"] is None


class TestFlattenCommonCode:
    """Tests for flatten_common_code."""

    def test_none(self) -> None:
        assert flatten_common_code(None) is None

    def test_empty_code(self) -> None:
        assert flatten_common_code(CommonCode(code="", codeName="x")) is None

    def test_code(self) -> None:
        assert flatten_common_code(CommonCode(code="RUN", codeName="Running")) == "RUN"
