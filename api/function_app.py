# function_app.py
# v2 Function App proxying the site's chat widget to Databricks AI/BI Genie:
#   - start_chat          : POST   /api/start         {message}
#   - continue_chat       : POST   /api/continue      {conversationId, message}
#   - get_status          : GET    /api/status?conversationId=&messageId=
#   - delete_conversation : DELETE /api/conversation?conversationId=
#
# Genie env:
#   - DATABRICKS_HOST (required), DATABRICKS_GENIE_SPACE_ID (required per call)
#   - Auth (pick one; first match wins):
#       DATABRICKS_TOKEN, or
#       DATABRICKS_CLIENT_ID + DATABRICKS_CLIENT_SECRET (OAuth M2M), or
#       DATABRICKS_USE_AZURE_IDENTITY=1 (DefaultAzureCredential / MSI)
#   - Optional: GENIE_HTTP_TIMEOUT_SEC, GENIE_POLL_MAX_ATTEMPTS,
#               GENIE_POLL_INTERVAL_MS, GENIE_POLL_MAX_WAIT_MS
#   - CORS_ALLOWED_ORIGINS (comma-separated; localhost defaults)

import logging
import os

import azure.functions as func

from genie import handlers
from genie.settings import load_env_file

# ---------------------------
# Local env loading (dev convenience)
# ---------------------------
load_env_file(os.path.join(os.path.dirname(__file__), ".env"))

try:
    import debugpy
except Exception:
    debugpy = None

if os.getenv("ENABLE_DEBUGPY") == "1" and debugpy is not None:
    host = os.getenv("DEBUGPY_HOST", "127.0.0.1")
    port = int(os.getenv("DEBUGPY_PORT", "5678"))
    try:
        debugpy.listen((host, port))
        logging.info("debugpy listening on %s:%s", host, port)
    except RuntimeError:
        pass  # already listening
    if os.getenv("WAIT_FOR_DEBUGGER") == "1":
        logging.info("Waiting for debugger to attach...")
        debugpy.wait_for_client()
elif os.getenv("ENABLE_DEBUGPY") == "1" and debugpy is None:
    logging.warning("ENABLE_DEBUGPY=1 but debugpy is not installed in this environment.")

# ---------------------------
# v2 FunctionApp + routes
# ---------------------------
app = func.FunctionApp()


@app.function_name(name="start_chat")
@app.route(route="start", methods=["POST", "OPTIONS"], auth_level=func.AuthLevel.ANONYMOUS)
async def start_chat(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "OPTIONS":
        return handlers.preflight(req)
    return await handlers.start_chat(req)


@app.function_name(name="continue_chat")
@app.route(route="continue", methods=["POST", "OPTIONS"], auth_level=func.AuthLevel.ANONYMOUS)
async def continue_chat(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "OPTIONS":
        return handlers.preflight(req)
    return await handlers.continue_chat(req)


@app.function_name(name="get_status")
@app.route(route="status", methods=["GET", "OPTIONS"], auth_level=func.AuthLevel.ANONYMOUS)
async def get_status(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "OPTIONS":
        return handlers.preflight(req)
    return await handlers.get_status(req)


@app.function_name(name="delete_conversation")
@app.route(route="conversation", methods=["DELETE", "OPTIONS"], auth_level=func.AuthLevel.ANONYMOUS)
async def delete_conversation(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "OPTIONS":
        return handlers.preflight(req)
    return await handlers.delete_conversation(req)
