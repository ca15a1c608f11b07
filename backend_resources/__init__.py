"""backend-resources Flask application package.

To use the Flask app:
    from backend_resources.flask_app import create_app

To use the Keycloak user admin client:
    from backend_resources.core.keycloak import KeycloakClient, KeycloakUserAdmin

To use the user service:
    from backend_resources.core.user_service import UserService
"""
# Note: flask_app is not imported here so the CLI can use core.keycloak
# without building the application.
