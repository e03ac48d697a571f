import logging

from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

logger = logging.getLogger(__name__)


@api_view(["GET"])
@authentication_classes([])
@permission_classes([AllowAny])
def health(request):
    db = "UP"
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except DatabaseError:
        logger.exception("health check: database unreachable")
        db = "DOWN"

    up = db == "UP"
    return Response(
        {"status": "UP" if up else "DEGRADED", "db": db, "time": timezone.now()},
        status=status.HTTP_200_OK if up else status.HTTP_503_SERVICE_UNAVAILABLE,
    )
