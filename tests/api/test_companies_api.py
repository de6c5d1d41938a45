"""Company accounts and funding pool endpoints."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import AsyncClient
from web3 import Web3

from tests.helpers import learner_address

COMPANY = {
    "name": "Acme Learning",
    "email": "Ops@Example.com",
    "wallet_address": learner_address(500),
    "password": "SecureP4ss",
}

POOL = {
    "course_name": "Smart Contract Basics",
    "total_fund": "100",
    "reward_per_student": "10",
    "max_participants": 10,
}


@pytest_asyncio.fixture
async def company_client(client: AsyncClient) -> AsyncClient:
    """Client carrying a registered company's bearer token."""
    response = await client.post("/api/v1/company/register", json=COMPANY)
    assert response.status_code == 201
    client.headers["Authorization"] = f"Bearer {response.json()['access_token']}"
    return client


class TestRegisterAndLogin:
    @pytest.mark.asyncio
    async def test_register_returns_token(self, client: AsyncClient):
        response = await client.post("/api/v1/company/register", json=COMPANY)
        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 7 * 86400
        assert data["company"]["email"] == "ops@example.com"
        assert data["company"]["wallet_address"] == learner_address(500)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client: AsyncClient):
        await client.post("/api/v1/company/register", json=COMPANY)
        response = await client.post(
            "/api/v1/company/register", json={**COMPANY, "wallet_address": learner_address(501)}
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Email already registered"

    @pytest.mark.asyncio
    async def test_duplicate_wallet(self, client: AsyncClient):
        await client.post("/api/v1/company/register", json=COMPANY)
        response = await client.post("/api/v1/company/register", json={**COMPANY, "email": "other@example.com"})
        assert response.status_code == 409
        assert response.json()["detail"] == "Wallet address already registered"

    @pytest.mark.asyncio
    async def test_weak_password(self, client: AsyncClient):
        response = await client.post("/api/v1/company/register", json={**COMPANY, "password": "weak"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_wallet(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/company/register", json={**COMPANY, "wallet_address": "0x" + "q" * 40}
        )
        assert response.status_code == 422
        assert response.json()["code"] == "invalid_wallet_address"

    @pytest.mark.asyncio
    async def test_login(self, client: AsyncClient):
        await client.post("/api/v1/company/register", json=COMPANY)
        response = await client.post(
            "/api/v1/company/login", json={"email": "ops@example.com", "password": COMPANY["password"]}
        )
        assert response.status_code == 200
        assert response.json()["access_token"]

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client: AsyncClient):
        await client.post("/api/v1/company/register", json=COMPANY)
        response = await client.post(
            "/api/v1/company/login", json={"email": COMPANY["email"], "password": "WrongP4ss"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/company/login", json={"email": "nobody@example.com", "password": "SecureP4ss"}
        )
        assert response.status_code == 401


class TestPoolAuth:
    @pytest.mark.asyncio
    async def test_pools_require_token(self, client: AsyncClient):
        response = await client.get("/api/v1/pools")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get("/api/v1/pools", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401


class TestCreatePool:
    @pytest.mark.asyncio
    async def test_create_pool_and_quest(self, company_client: AsyncClient):
        response = await company_client.post("/api/v1/pools", json=POOL)
        assert response.status_code == 201
        data = response.json()

        pool = data["pool"]
        assert pool["remaining_balance"] == 100
        assert pool["participants"] == 0
        assert pool["active"] is True
        assert pool["contract_address"] == "0xC84c34835BEB8A4fb180979E1A4b567A6fC9F9dE"
        assert data["pool_id_bytes"] == Web3.to_hex(Web3.keccak(text=pool["id"]))
        assert data["instructions"]["contract_address"] == pool["contract_address"]

        quest = data["quest"]
        assert quest["reward"] == 10
        assert quest["description"] == "Learn Smart Contract Basics and earn 10 mUSD. Funded by Acme Learning."
        assert pool["quest_id"] == quest["id"]

        catalog = (await company_client.get("/api/v1/quests")).json()["quests"]
        assert catalog[0]["id"] == quest["id"]
        assert catalog[0]["pool_status"]["company_name"] == "Acme Learning"

    @pytest.mark.asyncio
    async def test_custom_description_kept(self, company_client: AsyncClient):
        response = await company_client.post("/api/v1/pools", json={**POOL, "description": "Bespoke", "content": "Body"})
        assert response.json()["quest"]["description"] == "Bespoke"
        assert response.json()["quest"]["content"] == "Body"

    @pytest.mark.asyncio
    async def test_underfunded_terms_rejected(self, company_client: AsyncClient):
        response = await company_client.post("/api/v1/pools", json={**POOL, "total_fund": "99"})
        assert response.status_code == 400
        assert "Total fund must be" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_non_positive_amount_rejected(self, company_client: AsyncClient):
        response = await company_client.post("/api/v1/pools", json={**POOL, "reward_per_student": "0"})
        assert response.status_code == 422


class TestListAndDetail:
    @pytest.mark.asyncio
    async def test_list_counts_participants(self, company_client: AsyncClient):
        created = (await company_client.post("/api/v1/pools", json=POOL)).json()
        quest_id = created["quest"]["id"]
        wallet = learner_address(510)
        await company_client.post(f"/api/v1/quests/{quest_id}/complete", json={"wallet_address": wallet})
        await company_client.post("/api/v1/rewards/claim", json={"wallet_address": wallet, "quest_id": quest_id})

        pools = (await company_client.get("/api/v1/pools")).json()["pools"]
        assert len(pools) == 1
        assert pools[0]["participants"] == 1
        assert pools[0]["remaining_slots"] == 9
        assert pools[0]["remaining_balance"] == 90

        detail = (await company_client.get(f"/api/v1/pools/{created['pool']['id']}")).json()
        assert [c["wallet"] for c in detail["recent_claims"]] == [wallet]

    @pytest.mark.asyncio
    async def test_other_company_cannot_see_pool(self, company_client: AsyncClient):
        created = (await company_client.post("/api/v1/pools", json=POOL)).json()
        other = await company_client.post(
            "/api/v1/company/register",
            json={**COMPANY, "email": "rival@example.com", "wallet_address": learner_address(502)},
        )
        headers = {"Authorization": f"Bearer {other.json()['access_token']}"}

        assert (await company_client.get("/api/v1/pools", headers=headers)).json()["pools"] == []
        detail = await company_client.get(f"/api/v1/pools/{created['pool']['id']}", headers=headers)
        assert detail.status_code == 404
        close = await company_client.delete(f"/api/v1/pools/{created['pool']['id']}", headers=headers)
        assert close.status_code == 404


class TestClosePool:
    @pytest.mark.asyncio
    async def test_close_withdraws_quest(self, company_client: AsyncClient):
        created = (await company_client.post("/api/v1/pools", json=POOL)).json()
        pool_id, quest_id = created["pool"]["id"], created["quest"]["id"]
        claimed, pending = learner_address(520), learner_address(521)
        for wallet in (claimed, pending):
            await company_client.post(f"/api/v1/quests/{quest_id}/complete", json={"wallet_address": wallet})
        await company_client.post("/api/v1/rewards/claim", json={"wallet_address": claimed, "quest_id": quest_id})

        response = await company_client.delete(f"/api/v1/pools/{pool_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["closed"] is True
        assert data["refund_available"] == 90
        assert data["removed_completions"] == 1

        assert (await company_client.get(f"/api/v1/quests/{quest_id}")).status_code == 404
        history = (await company_client.get(f"/api/v1/rewards/{claimed}")).json()
        assert history["count"] == 1
        pending_claim = await company_client.post(
            "/api/v1/rewards/claim", json={"wallet_address": pending, "quest_id": quest_id}
        )
        assert pending_claim.status_code == 404

        again = (await company_client.delete(f"/api/v1/pools/{pool_id}")).json()
        assert again["closed"] is False
        assert again["refund_available"] == 90
        assert again["message"] == "Pool already closed"

        detail = (await company_client.get(f"/api/v1/pools/{pool_id}")).json()
        assert detail["active"] is False
        assert detail["closed_at"] is not None
