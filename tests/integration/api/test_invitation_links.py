from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient

from src.api.utils.jwt import generate_jwt
from src.domain.entities import InvitationStatus, User


def redirect_params(response):
    location = urlparse(response.headers["location"])
    params = parse_qs(location.query)
    return location.path, params["invitation_status"][0], params["invitation_message"][0]


@pytest.mark.asyncio
async def test_show_valid_invitation_redirects_to_accept_link(
    client: AsyncClient, service
):
    invitation = await service.invite("show@acme.com")

    response = await client.get(f"/invitations/{invitation.token}")

    assert response.status_code == 303
    assert response.headers["location"].endswith(f"/invitations/{invitation.token}/accept")


@pytest.mark.asyncio
async def test_show_unknown_token_redirects_with_error(client: AsyncClient):
    response = await client.get("/invitations/not-a-real-token")

    assert response.status_code == 303
    _, status, message = redirect_params(response)
    assert status == "error"
    assert message == "Invalid invitation link."


@pytest.mark.asyncio
async def test_accept_with_bearer_token_records_the_user(
    client: AsyncClient, db_session, service
):
    # Arrange
    user = User(email="member@acme.com")
    db_session.add(user)
    await db_session.commit()
    invitation = await service.invite("member@acme.com")

    # Act
    response = await client.post(
        f"/invitations/{invitation.token}/accept",
        headers={"Authorization": f"Bearer {generate_jwt(user.id)}"},
    )

    # Assert
    assert response.status_code == 303
    _, status, _ = redirect_params(response)
    assert status == "accepted"
    reloaded = await service.find(invitation.token)
    assert reloaded.status == InvitationStatus.accepted
    assert reloaded.accepted_by == user.id


@pytest.mark.asyncio
async def test_accept_twice_is_reported_as_success(client: AsyncClient, service):
    invitation = await service.invite("twice@acme.com")
    await client.get(f"/invitations/{invitation.token}/accept")

    response = await client.get(f"/invitations/{invitation.token}/accept")

    _, status, message = redirect_params(response)
    assert status == "success"
    assert message == "This invitation has already been accepted."


@pytest.mark.asyncio
async def test_accept_expired_invitation_redirects_to_expired(
    client: AsyncClient, make_invitation
):
    invitation = await make_invitation("late@acme.com", expires_in_days=-1)

    response = await client.get(f"/invitations/{invitation.token}/accept")

    _, status, message = redirect_params(response)
    assert status == "expired"
    assert message == "This invitation has expired."


@pytest.mark.asyncio
async def test_accept_with_invalid_bearer_token_is_rejected(client: AsyncClient, service):
    invitation = await service.invite("bad-token@acme.com")

    response = await client.post(
        f"/invitations/{invitation.token}/accept",
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_decline_then_decline_again(client: AsyncClient, service):
    invitation = await service.invite("no@acme.com")

    first = await client.post(f"/invitations/{invitation.token}/decline")
    second = await client.post(f"/invitations/{invitation.token}/decline")

    assert redirect_params(first)[1] == "declined"
    _, status, message = redirect_params(second)
    assert status == "error"
    assert message == "This invitation cannot be declined."
