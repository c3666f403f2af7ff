import logging

from fastapi import APIRouter, Request, Response, status

from blogapi.core.db import wipe_all

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/testing", tags=["testing"])


@router.delete("/all-data", status_code=status.HTTP_204_NO_CONTENT)
async def delete_all_data(request: Request):
    await wipe_all(request.app.state.engine)
    logger.warning("All data wiped through the testing endpoint")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
