from rest_framework.authentication import TokenAuthentication


class BearerTokenAuthentication(TokenAuthentication):
    """
    Token auth using the `Authorization: Bearer <token>` scheme.

    Tokens are minted when the identity provider's session is exchanged;
    this class only resolves them to a user.
    """
    keyword = 'Bearer'
