# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.
"""Unit tests for HiveGateway — reads, writes and failure capture."""

import json
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from conftest import FIXED_NOW, route_rpc
from hub_portal.core.errors import (
    InvalidRole,
    MissingCredential,
    UpstreamUnavailable,
    ValidationError,
)
from hub_portal.core.roles import CommunityRole
from hub_portal.hive.permlink import base36
from hub_portal.runtime.hive_rpc import RPCError
from hub_portal.services.gateway import GatewayResult, failure_status


def _broadcast_params(mock_rpc):
    """The transaction passed to broadcast_transaction_synchronous."""
    for call in mock_rpc.call.call_args_list:
        if call.args[1] == "broadcast_transaction_synchronous":
            assert call.kwargs.get("broadcast") is True
            return call.args[2][0]
    raise AssertionError("nothing was broadcast")


@pytest.fixture
def writable(mock_rpc, global_props):
    route_rpc(mock_rpc, {
        "condenser_api.get_dynamic_global_properties": global_props,
        "condenser_api.broadcast_transaction_synchronous": {"id": "abc123", "block_num": 1},
    })
    return mock_rpc


class TestGatewayResult:
    def test_failure_status(self):
        assert failure_status(GatewayResult.fail("x", "POST_NOT_FOUND")) == 404
        assert failure_status(GatewayResult.fail("x", "ACCOUNT_NOT_FOUND")) == 404
        assert failure_status(GatewayResult.fail("x")) == 500
        assert failure_status(GatewayResult.fail("x", "RPC_ERROR")) == 500


class TestReads:
    @pytest.mark.asyncio
    async def test_community_details(self, gateway, mock_rpc, hub):
        mock_rpc.call.return_value = {"name": "hive-138395", "title": "Test City"}
        result = await gateway.get_community_details(hub)
        assert result.success
        mock_rpc.call.assert_awaited_once_with(
            "bridge", "get_community", {"name": "hive-138395", "observer": "taxi.admin"},
        )

    @pytest.mark.asyncio
    async def test_missing_community(self, gateway, mock_rpc):
        mock_rpc.call.return_value = None
        result = await gateway.get_community_by_name("hive-000000")
        assert not result.success
        assert result.error_code == "COMMUNITY_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_list_subscribers_omits_empty_last(self, gateway, mock_rpc, hub):
        mock_rpc.call.return_value = [["alice", "member", "", "2024-01-01T00:00:00"]]
        result = await gateway.list_subscribers(hub, 100, "")
        params = mock_rpc.call.call_args.args[2]
        assert "last" not in params
        assert params == {"community": "hive-138395", "limit": 100}
        assert result.data[0].account == "alice"
        assert result.data[0].role is CommunityRole.MEMBER

    @pytest.mark.asyncio
    async def test_list_subscribers_forwards_last(self, gateway, mock_rpc, hub):
        mock_rpc.call.return_value = []
        await gateway.list_subscribers(hub, 50, "somekey")
        assert mock_rpc.call.call_args.args[2]["last"] == "somekey"

    @pytest.mark.asyncio
    async def test_list_subscribers_skips_malformed_rows(self, gateway, mock_rpc, hub):
        mock_rpc.call.return_value = [["alice", "member"], ["bob", "wizard"], ["carol"]]
        result = await gateway.list_subscribers(hub)
        assert [r.account for r in result.data] == ["alice"]

    @pytest.mark.asyncio
    async def test_list_community_roles(self, gateway, mock_rpc, hub):
        mock_rpc.call.return_value = [["alice", "admin", ""]]
        result = await gateway.list_community_roles(hub, "")
        assert result.data == [["alice", "admin", ""]]
        assert "last" not in mock_rpc.call.call_args.args[2]

    @pytest.mark.asyncio
    async def test_ranked_posts_params(self, gateway, mock_rpc, hub):
        mock_rpc.call.return_value = [
            {"author": "alice", "permlink": "p1", "stats": {"total_votes": 2}, "children": 1},
        ]
        result = await gateway.get_ranked_posts(hub, "trending", 500)
        assert mock_rpc.call.call_args.args[2] == {
            "sort": "trending", "tag": "hive-138395", "limit": 20, "observer": "taxi.admin",
        }
        assert result.data[0].votes == 2

    @pytest.mark.asyncio
    async def test_ranked_posts_cursor(self, gateway, mock_rpc, hub):
        mock_rpc.call.return_value = []
        await gateway.get_ranked_posts(hub, "created", 20, "alice", "p1")
        params = mock_rpc.call.call_args.args[2]
        assert params["start_author"] == "alice"
        assert params["start_permlink"] == "p1"

    @pytest.mark.asyncio
    async def test_ranked_posts_half_cursor_rejected(self, gateway, mock_rpc, hub):
        with pytest.raises(ValidationError):
            await gateway.get_ranked_posts(hub, "created", 20, "alice", None)
        mock_rpc.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_ranked_posts_bad_sort(self, gateway, mock_rpc, hub):
        with pytest.raises(ValidationError):
            await gateway.get_ranked_posts(hub, "newest")
        mock_rpc.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_account_posts(self, gateway, mock_rpc, hub):
        mock_rpc.call.return_value = [{"author": "bob", "permlink": "x"}]
        result = await gateway.get_account_posts(hub, "bob")
        assert mock_rpc.call.call_args.args[:2] == ("bridge", "get_account_posts")
        assert result.data[0].author == "bob"

    @pytest.mark.asyncio
    async def test_post_with_replies(self, gateway, mock_rpc):
        mock_rpc.call.return_value = {
            "alice/root": {"author": "alice", "permlink": "root", "replies": ["bob/r1"]},
            "bob/r1": {"author": "bob", "permlink": "r1", "replies": []},
        }
        result = await gateway.get_post_with_replies("alice", "root")
        assert result.success
        assert result.data.replies[0].author == "bob"

    @pytest.mark.asyncio
    async def test_post_not_found(self, gateway, mock_rpc):
        mock_rpc.call.return_value = {}
        result = await gateway.get_post_with_replies("alice", "gone")
        assert not result.success
        assert result.error_code == "POST_NOT_FOUND"
        assert failure_status(result) == 404

    @pytest.mark.asyncio
    async def test_account(self, gateway, mock_rpc):
        mock_rpc.call.return_value = [{"name": "alice"}]
        result = await gateway.get_account("alice")
        assert result.data == {"name": "alice"}
        mock_rpc.call.assert_awaited_once_with("condenser_api", "get_accounts", [["alice"]])

    @pytest.mark.asyncio
    async def test_account_exists(self, gateway, mock_rpc):
        mock_rpc.call.return_value = []
        assert await gateway.account_exists("nobody") is False
        mock_rpc.call.side_effect = UpstreamUnavailable("down")
        assert await gateway.account_exists("alice") is False

    @pytest.mark.asyncio
    async def test_upstream_failure_is_captured(self, gateway, mock_rpc, hub):
        mock_rpc.call.side_effect = RPCError("bridge.get_community", {"message": "boom"})
        result = await gateway.get_community_details(hub)
        assert not result.success
        assert result.error == "boom"
        assert result.error_code == "RPC_ERROR"


class TestWrites:
    @pytest.mark.asyncio
    async def test_set_role_broadcasts_custom_json(self, gateway, writable, hub):
        result = await gateway.set_role(hub, "alice", "mod")
        assert result.success
        assert result.data == {"id": "abc123", "block_num": 1}

        tx = _broadcast_params(writable)
        assert len(tx["operations"]) == 1
        name, op = tx["operations"][0]
        assert name == "custom_json"
        assert op["id"] == "community"
        assert op["required_posting_auths"] == ["taxi.admin"]
        assert op["required_auths"] == []
        assert json.loads(op["json"]) == [
            "setRole", {"community": "hive-138395", "account": "alice", "role": "mod"},
        ]
        assert len(tx["signatures"]) == 1
        assert len(tx["signatures"][0]) == 130

    @pytest.mark.asyncio
    async def test_invalid_role_before_credentials(self, gateway, mock_rpc, hub):
        gateway._credentials = MagicMock()
        with pytest.raises(InvalidRole):
            await gateway.set_role(hub, "alice", "owner")
        gateway._credentials.get_signing_key.assert_not_called()
        mock_rpc.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_credential_before_upstream(self, gateway, mock_rpc, hub):
        with pytest.raises(MissingCredential):
            await gateway.set_role(replace(hub, signing_key_ref=None), "alice", "member")
        mock_rpc.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_account_rejected(self, gateway, mock_rpc, hub):
        with pytest.raises(ValidationError):
            await gateway.mute_user(hub, "")
        mock_rpc.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_mute_and_unmute(self, gateway, writable, hub):
        await gateway.mute_user(hub, "spammer", "Policy violation")
        payload = json.loads(_broadcast_params(writable)["operations"][0][1]["json"])
        assert payload == ["setRole", {
            "community": "hive-138395", "account": "spammer",
            "role": "muted", "notes": "Policy violation",
        }]

        writable.call.reset_mock()
        await gateway.unmute_user(hub, "spammer")
        payload = json.loads(_broadcast_params(writable)["operations"][0][1]["json"])
        assert payload[0] == "setRole"
        assert payload[1]["role"] == "guest"

    @pytest.mark.asyncio
    async def test_pin_and_unpin(self, gateway, writable, hub):
        await gateway.pin_post(hub, "alice", "p1", notes="weekly")
        payload = json.loads(_broadcast_params(writable)["operations"][0][1]["json"])
        assert payload == ["pinPost", {
            "community": "hive-138395", "account": "alice", "permlink": "p1", "notes": "weekly",
        }]

        writable.call.reset_mock()
        await gateway.unpin_post(hub, "alice", "p1")
        payload = json.loads(_broadcast_params(writable)["operations"][0][1]["json"])
        assert payload[0] == "unpinPost"

    @pytest.mark.asyncio
    async def test_pin_requires_permlink(self, gateway, mock_rpc, hub):
        with pytest.raises(ValidationError):
            await gateway.pin_post(hub, "alice", "")
        mock_rpc.call.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_post(self, gateway, writable, hub):
        result = await gateway.create_post(hub, "Hello, World! ", "Body text", ["rides", "city"])
        assert result.success
        expected_permlink = "hello-world-" + base36(int(FIXED_NOW * 1000))
        assert result.data["permlink"] == expected_permlink
        assert result.data["author"] == "taxi.admin"

        name, op = _broadcast_params(writable)["operations"][0]
        assert name == "comment"
        assert op["parent_author"] == ""
        assert op["parent_permlink"] == "rides"
        assert op["permlink"] == expected_permlink
        meta = json.loads(op["json_metadata"])
        assert meta["tags"] == ["hubportal", "hive-138395", "rides", "city"]
        assert meta["format"] == "markdown"

    @pytest.mark.asyncio
    async def test_create_post_fallback_category(self, gateway, writable, hub):
        await gateway.create_post(hub, "Title", "Body")
        op = _broadcast_params(writable)["operations"][0][1]
        assert op["parent_permlink"] == "hubportal"

    @pytest.mark.asyncio
    async def test_broadcast_failure_captured(self, gateway, mock_rpc, hub, global_props):
        route_rpc(mock_rpc, {
            "condenser_api.get_dynamic_global_properties": global_props,
            "condenser_api.broadcast_transaction_synchronous": RPCError(
                "condenser_api.broadcast_transaction_synchronous",
                {"message": "missing required posting authority:Missing Posting Authority"},
            ),
        })
        result = await gateway.set_role(hub, "alice", "member")
        assert not result.success
        assert result.error == "Insufficient permissions to perform this action"
        broadcasts = [c for c in mock_rpc.call.call_args_list if c.kwargs.get("broadcast")]
        assert len(broadcasts) == 1
