from rest_framework.views import exception_handler


def _first_message(data):
    if isinstance(data, dict):
        if 'detail' in data:
            return str(data['detail'])
        for field, errors in data.items():
            message = _first_message(errors)
            if field == 'non_field_errors':
                return message
            return f"{field}: {message}"
    if isinstance(data, list) and data:
        return _first_message(data[0])
    return str(data)


def error_exception_handler(exc, context):
    """
    DRF exception handler that renders every handled error as ``{"error": "<message>"}``.

    Validation errors collapse to their first message, prefixed with the field name.
    """
    response = exception_handler(exc, context)
    if response is not None:
        response.data = {'error': _first_message(response.data)}
    return response
