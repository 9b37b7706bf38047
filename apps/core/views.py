"""
Health check and authentication views.

Kubernetes-style probes plus the JWT endpoints the admin front end logs in
through.
"""

from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from apps.core.serializers import CustomTokenObtainPairSerializer, UserSerializer


@method_decorator(csrf_exempt, name='dispatch')
class LivenessView(View):
    """
    Liveness probe endpoint.

    Returns 200 if the application is running.
    """

    def get(self, request):
        return JsonResponse({"status": "alive"})


@method_decorator(csrf_exempt, name='dispatch')
class ReadinessView(View):
    """
    Readiness probe endpoint.

    Returns 200 if the database answers, 503 otherwise.
    """

    def get(self, request):
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except DatabaseError as exc:
            return JsonResponse({
                "status": "not_ready",
                "reason": str(exc),
            }, status=503)
        return JsonResponse({"status": "ready"})


class CustomTokenObtainPairView(TokenObtainPairView):
    """
    Login endpoint that returns JWT tokens.

    POST /api/auth/login/
    Body: {"username": "...", "password": "..."}
    Returns: {"access": "...", "refresh": "...", "user": {...}}
    """
    serializer_class = CustomTokenObtainPairSerializer
    permission_classes = [AllowAny]


class CustomTokenRefreshView(TokenRefreshView):
    """
    Token refresh endpoint.

    POST /api/auth/refresh/
    Body: {"refresh": "..."}
    Returns: {"access": "..."}
    """
    permission_classes = [AllowAny]


class CurrentUserView(APIView):
    """
    GET /api/auth/me/ - Current user with editorial role
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)
