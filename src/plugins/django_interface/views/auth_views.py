from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView


class MeView(APIView):
    """GET /me/ → the claims carried by the bearer token."""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        user = request.user
        return Response({"id": user.id, "role": user.role, "clinic_id": user.clinic_id})


class HealthCheckView(APIView):
    """
    GET /api/healthz/ → 200 while the API is alive.
    """
    permission_classes = []
    authentication_classes = []

    def get(self, request):
        return Response({"status": "ok"}, status=status.HTTP_200_OK)
