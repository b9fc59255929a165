from fastapi import APIRouter, Depends

from ..auth import Identity, current_identity
from ..notifications import NotificationDispatcher
from ..rate_limit import enforce_rate_limit
from ..schemas import ProposeSwapRequest, SwapIdRequest
from ..services import swaps
from .deps import get_dispatcher

router = APIRouter(tags=["swaps"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/proposeSwap")
async def propose_swap(
    body: ProposeSwapRequest,
    identity: Identity = Depends(current_identity),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await swaps.propose_swap(identity, body, dispatcher)


@router.post("/acceptSwap")
async def accept_swap(
    body: SwapIdRequest,
    identity: Identity = Depends(current_identity),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await swaps.accept_swap(identity, body.swap_id, dispatcher)


@router.post("/declineSwap")
async def decline_swap(
    body: SwapIdRequest,
    identity: Identity = Depends(current_identity),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await swaps.decline_swap(identity, body.swap_id, dispatcher)


@router.get("/getUserSwaps")
async def get_user_swaps(identity: Identity = Depends(current_identity)):
    return await swaps.get_user_swaps(identity)
