"""
DRF Spectacular hooks

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""


def postprocessing_hook(result, generator, request, public):
    """
    Point the schema's server list at the host that served it and declare the
    JWT bearer scheme referenced by SPECTACULAR_SETTINGS['SECURITY'].
    """
    if request:
        host = request.get_host()
        scheme = 'https' if request.is_secure() else 'http'
        result['servers'] = [{'url': f"{scheme}://{host}", 'description': host}]

    schemes = result.setdefault('components', {}).setdefault('securitySchemes', {})
    schemes.setdefault('Bearer', {'type': 'http', 'scheme': 'bearer', 'bearerFormat': 'JWT'})
    return result
