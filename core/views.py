"""
Core App Views - User Management API
"""

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .models import UserRole
from .serializers import AccountCreateSerializer, UserSerializer
from .services import create_account, search_users

User = get_user_model()


class IsAdminRole(permissions.BasePermission):
    """Permission for administrator accounts only."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == UserRole.ADMIN


class ReadOnlyForSupervisor(permissions.BasePermission):
    """Supervisors may read but never change anything."""

    def has_permission(self, request, view):
        if request.user.is_authenticated and request.user.role == UserRole.SUPERVISOR:
            return request.method in permissions.SAFE_METHODS
        return True


class UserViewSet(mixins.ListModelMixin,
                  mixins.RetrieveModelMixin,
                  mixins.UpdateModelMixin,
                  viewsets.GenericViewSet):
    """
    ViewSet for User model.

    - Create: bootstrap-open until an administrator exists, then admin only
      (checked by the account service)
    - List/Update: Admin only
    - me: any authenticated user
    """

    queryset = User.objects.all()
    serializer_class = UserSerializer

    def get_permissions(self):
        if self.action == 'create':
            return [permissions.AllowAny()]
        if self.action == 'me':
            return [permissions.IsAuthenticated()]
        return [IsAdminRole()]

    def create(self, request):
        serializer = AccountCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        role = data.pop('role')

        try:
            user = create_account(data, role, acting_user=request.user)
        except PermissionDenied as e:
            return Response(
                {'success': False, 'message': str(e)},
                status=status.HTTP_403_FORBIDDEN
            )
        except ValueError as e:
            return Response(
                {'success': False, 'message': str(e)},
                status=status.HTTP_400_BAD_REQUEST
            )

        return Response(
            {
                'success': True,
                'user_id': str(user.id),
                'message': f"{user.get_role_display()} creado exitosamente",
            },
            status=status.HTTP_201_CREATED
        )

    @action(detail=False, methods=['get'])
    def me(self, request):
        """Get current user profile."""
        return Response(UserSerializer(request.user).data)

    @action(detail=False, methods=['get'])
    def drivers(self, request):
        """List / search drivers (?search=)."""
        drivers = search_users(UserRole.DRIVER, request.query_params.get('search', ''))
        return Response(UserSerializer(drivers, many=True).data)

    @action(detail=False, methods=['get'])
    def customers(self, request):
        """List / search customers (?search=)."""
        customers = search_users(UserRole.CUSTOMER, request.query_params.get('search', ''))
        return Response(UserSerializer(customers, many=True).data)
