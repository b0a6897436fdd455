from django.contrib.auth import get_user_model
from rest_framework_simplejwt.views import TokenRefreshView
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework.response import Response
from rest_framework import status
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

User = get_user_model()


class CustomTokenRefreshView(TokenRefreshView):
    authentication_classes = []  # Disable authentication for refresh

    def post(self, request, *args, **kwargs):
        refresh_token = request.data.get('refresh', '')
        if not refresh_token:
            return Response({"error": "No refresh token provided"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            token = RefreshToken(refresh_token)
        except TokenError as e:
            logger.warning(f"Invalid token during refresh: {str(e)}")
            return Response({"error": "Invalid or expired refresh token"}, status=status.HTTP_401_UNAUTHORIZED)

        # suspended or deleted accounts must not keep minting access tokens
        user = User.objects.filter(pk=token.get('user_id')).first()
        if user is None or not user.is_active:
            logger.warning(f"Refresh attempted for inactive user id {token.get('user_id')}")
            return Response({"error": "Account is suspended or deleted"}, status=status.HTTP_401_UNAUTHORIZED)

        try:
            response = super().post(request, *args, **kwargs)
        except InvalidToken as e:
            logger.warning(f"Invalid token during refresh: {str(e)}")
            return Response({"error": "Invalid or expired refresh token"}, status=status.HTTP_401_UNAUTHORIZED)

        logger.info(f"Token refreshed for {user.email}")
        return response
