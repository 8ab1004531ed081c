import os
from typing import AsyncGenerator

from fastapi import Request

from src.recordfiles.configs.config import get_config
from src.recordfiles.uploads import RequestUploadIntake, stage_uploads, use_upload_intake


async def request_uploads(request: Request) -> AsyncGenerator[RequestUploadIntake, None]:
    """Stage the files of a multipart request for the file behaviors.

    Use as a route dependency; records saved while handling the request pick up
    the upload sent for their file field. Uploads left unstored are removed
    once the response is produced.
    """
    form = await request.form()
    intake = await stage_uploads(form.multi_items(), os.path.join(get_config().temp_path, "uploads"))
    try:
        with use_upload_intake(intake):
            yield intake
    finally:
        intake.close()
        await form.close()
