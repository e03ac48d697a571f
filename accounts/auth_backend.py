from django.contrib.auth.backends import ModelBackend
from django.contrib.auth import get_user_model

User = get_user_model()


class FlexibleAuthBackend(ModelBackend):
    """
    Authenticate with:
    - email + password
    - username + password
    - email + username + password (both must match)

    Soft-deleted accounts never authenticate: ``User.objects`` hides them.
    """
    def authenticate(self, request, username=None, password=None, **kwargs):
        email = kwargs.get("email")

        if not password or not (username or email):
            return None

        lookup = {}
        if username:
            lookup["username"] = username
        if email:
            lookup["email__iexact"] = email

        try:
            user = User.objects.get(**lookup)
        except (User.DoesNotExist, User.MultipleObjectsReturned):
            # run the hasher anyway to even out timing
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None

    def get_user(self, user_id):
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None
