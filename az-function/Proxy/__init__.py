import azure.functions as func
from shared.common_proxy import forward_action

async def main(req: func.HttpRequest) -> func.HttpResponse:
    return await forward_action(req)
