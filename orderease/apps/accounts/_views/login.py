from django.contrib.auth import authenticate
from rest_framework.views import APIView
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.utils import user_allowed_branches
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


class UserLoginView(APIView):
    """Email/password login for every role; returns a JWT pair"""
    permission_classes = [AllowAny]
    authentication_classes = []  # Disable authentication for this view

    def get_tokens_for_user(self, user):
        refresh = RefreshToken.for_user(user)
        refresh['role'] = user.role
        refresh['branch_id'] = user.branch_id
        refresh['restaurant_id'] = user.restaurant_id
        return {
            'refresh': str(refresh),
            'access': str(refresh.access_token),
        }

    def post(self, request):
        email = request.data.get('email')
        password = request.data.get('password')

        if not email or not password:
            return Response(
                {'error': 'Email and password are required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        # authenticate() refuses inactive and deleted accounts
        user = authenticate(request=request, username=email, password=password)
        if not user:
            logger.warning(f"Failed login attempt for {email}")
            return Response(
                {'error': 'Invalid credentials'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        tokens = self.get_tokens_for_user(user)
        logger.info(f"User {user.email} ({user.role}) logged in")

        return Response({
            **tokens,
            'user': user.to_dict(),
            'branches': [
                {'id': branch.id, 'name': branch.name, 'restaurant_id': branch.restaurant_id}
                for branch in user_allowed_branches(user)
            ],
        })
