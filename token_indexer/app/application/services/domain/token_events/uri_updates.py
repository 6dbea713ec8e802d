from __future__ import annotations

import logging
from typing import Any

from token_indexer.app.application.services.entities.unit_of_work import EntityManagers
from token_indexer.app.domain import ids
from token_indexer.app.domain.errors import MissingEntityError
from token_indexer.app.domain.models import EventContext
from token_indexer.app.domain.sanitize import sanitize_uri

logger = logging.getLogger(__name__)


async def resolve_erc1155_uri(
    managers: EntityManagers,
    ctx: EventContext,
    payload: dict[str, Any],
) -> bool:
    """
    Apply ERC1155 URI(value, id): record the change and update the token's uri.

    The token must already exist; a URI event for an unknown token raises
    MissingEntityError.
    """
    if await managers.uri_update_actions.get(ctx.event_id) is not None:
        logger.debug("URI update %s already indexed; skipping", ctx.event_id)
        return False

    token_id = ids.nft_id(ctx.contract_address, payload["id"])
    token = await managers.nf_tokens.get(token_id)
    if token is None:
        raise MissingEntityError("NfToken", token_id)

    old_value = token.uri
    new_value = sanitize_uri(payload["value"])

    managers.uri_update_actions.create(
        ctx=ctx,
        token_id=token.id,
        old_value=old_value,
        new_value=new_value,
    )

    token.uri = new_value
    managers.nf_tokens.add(token)

    return True
