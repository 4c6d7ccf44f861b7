from devcamper.pipeline.context import CONTINUE, RequestContext, StageOutcome

STAGE_NAME = "security_headers"


class SecurityHeaders:
    """Set hardening response headers on every response that passes this stage.

    - X-Content-Type-Options: nosniff
    - X-Frame-Options: SAMEORIGIN
    - X-DNS-Prefetch-Control: off
    - X-Download-Options: noopen
    - X-XSS-Protection: 0
    - Referrer-Policy: no-referrer
    - X-Permitted-Cross-Domain-Policies: none
    - Strict-Transport-Security (HTTPS requests only)
    """

    name = STAGE_NAME

    DEFAULT_HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "SAMEORIGIN",
        "X-DNS-Prefetch-Control": "off",
        "X-Download-Options": "noopen",
        "X-XSS-Protection": "0",
        "Referrer-Policy": "no-referrer",
        "X-Permitted-Cross-Domain-Policies": "none",
        "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    }

    def __init__(self, custom_headers: dict[str, str] | None = None) -> None:
        self.custom_headers = custom_headers or {}

    def get_security_headers(self) -> dict[str, str]:
        headers = dict(self.DEFAULT_HEADERS)
        headers.update(self.custom_headers)
        return headers

    async def process(self, ctx: RequestContext) -> StageOutcome:
        for header, value in self.get_security_headers().items():
            if header == "Strict-Transport-Security" and ctx.request.url.scheme != "https":
                continue
            ctx.response_headers[header] = value
        return CONTINUE
