from rest_framework.renderers import JSONRenderer


class EnvelopeJSONRenderer(JSONRenderer):
    """
    Wraps successful payloads as ``{"ok": true, "data": ...}``.
    Error payloads are already shaped by ``api_exception_handler``.
    """

    def render(self, data, accepted_media_type=None, renderer_context=None):
        response = (renderer_context or {}).get("response")
        if data is None and response is not None and response.status_code == 204:
            return b""
        if not (isinstance(data, dict) and "ok" in data):
            if response is None or response.status_code < 400:
                data = {"ok": True, "data": data}
        return super().render(data, accepted_media_type, renderer_context)
