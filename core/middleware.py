from django.conf import settings
from django.http import FileResponse

HSTS_VALUE = 'max-age=31536000; includeSubDomains; preload'

PERMISSIONS_POLICY = ', '.join([
    'accelerometer=()',
    'ambient-light-sensor=()',
    'autoplay=()',
    'battery=()',
    'camera=()',
    'display-capture=()',
    'document-domain=()',
    'encrypted-media=()',
    'fullscreen=(self)',
    'geolocation=()',
    'gyroscope=()',
    'magnetometer=()',
    'microphone=()',
    'midi=()',
    'payment=()',
    'picture-in-picture=()',
    'publickey-credentials-get=()',
    'screen-wake-lock=()',
    'sync-xhr=()',
    'usb=()',
])


def content_security_policy() -> str:
    connect_src = ' '.join(dict.fromkeys(
        ["'self'", settings.APP_URL, settings.FRONTEND_URL, 'ws:', 'wss:']
    ))
    directives = [
        "default-src 'self'",
        "script-src 'self' 'unsafe-inline' 'unsafe-eval'",
        "style-src 'self' 'unsafe-inline'",
        "img-src 'self' data: https:",
        "font-src 'self' data:",
        f"connect-src {connect_src}",
        "frame-src 'none'",
        "object-src 'none'",
        "media-src 'self'",
        "form-action 'self'",
        "frame-ancestors 'none'",
        "base-uri 'self'",
    ]
    if settings.ENV == 'prod':
        directives.append('upgrade-insecure-requests')
    return '; '.join(directives)


class SecurityHeadersMiddleware:
    """Attach the security header set to every response.

    Installed first in ``MIDDLEWARE`` so it also decorates error
    responses produced further down the stack.  Streamed file bodies
    are passed through as-is.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        if isinstance(response, FileResponse):
            return response

        response['Content-Security-Policy'] = content_security_policy()
        if request.is_secure() or settings.ENV == 'prod':
            response['Strict-Transport-Security'] = HSTS_VALUE
        response['X-Frame-Options'] = 'DENY'
        response['X-Content-Type-Options'] = 'nosniff'
        response['X-XSS-Protection'] = '1; mode=block'
        response['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response['Permissions-Policy'] = PERMISSIONS_POLICY
        response['X-Permitted-Cross-Domain-Policies'] = 'none'
        response['X-Download-Options'] = 'noopen'
        response['Cross-Origin-Embedder-Policy'] = 'require-corp'
        response['Cross-Origin-Opener-Policy'] = 'same-origin'
        response['Cross-Origin-Resource-Policy'] = 'same-origin'
        return response
