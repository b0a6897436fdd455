# accounts/models.py
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager
from django.db import models

from orderease.utils.lifecycle import LifecycleModel, LifecycleQuerySet, LifecycleState


class Role(models.TextChoices):
    SUPER_ADMIN = 'Super_Admin', 'Super Admin'
    ADMIN = 'admin', 'Restaurant Admin'
    BRANCH_MANAGER = 'Branch_Manager', 'Branch Manager'
    POS_OPERATOR = 'POS_Operator', 'POS Operator'
    STAFF = 'Staff', 'Staff'
    WAITER = 'Waiter', 'Waiter'
    CHEF = 'Chef', 'Chef'
    KITCHEN = 'Kitchen', 'Kitchen'
    DELIVERY = 'Delivery', 'Delivery'


class UserManager(BaseUserManager.from_queryset(LifecycleQuerySet)):
    def create_user(self, email, password=None, **extra_fields):
        """Creates and saves a user with the given email and password"""
        if not email:
            raise ValueError('Users must have an email address')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password, **extra_fields):
        """Creates and saves a Super_Admin with the given email and password"""
        extra_fields.setdefault('role', Role.SUPER_ADMIN)

        if extra_fields.get('role') != Role.SUPER_ADMIN:
            raise ValueError('Superuser must have role=Super_Admin')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, LifecycleModel):
    email = models.EmailField('email address', unique=True)
    first_name = models.CharField('first name', max_length=100)
    last_name = models.CharField('last name', max_length=100, blank=True)
    phone = models.CharField(max_length=20, blank=True)

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STAFF)
    restaurant = models.ForeignKey('restaurants.Restaurant', null=True, blank=True, on_delete=models.SET_NULL, related_name='users')
    branch = models.ForeignKey('restaurants.Branch', null=True, blank=True, on_delete=models.SET_NULL, related_name='staff')

    created_by = models.ForeignKey('self', null=True, blank=True, on_delete=models.SET_NULL, related_name='created_users')
    created_at = models.DateTimeField(auto_now_add=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name']

    class Meta:
        ordering = ['first_name', 'last_name']

    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.email})"

    @property
    def is_active(self):
        # suspended and deleted accounts can neither log in nor use a token
        return self.lifecycle_state == LifecycleState.ACTIVE

    @property
    def is_super_admin(self):
        return self.role == Role.SUPER_ADMIN

    def has_branch_access(self, branch):
        """Check if user may act on the given branch (instance or id)"""
        from orderease.apps.restaurants.models import Branch

        if self.is_super_admin:
            return True
        if not isinstance(branch, Branch):
            branch = Branch.objects.filter(pk=branch).first()
            if branch is None:
                return False
        if self.role == Role.ADMIN:
            return self.restaurant_id is not None and branch.restaurant_id == self.restaurant_id
        return self.branch_id is not None and branch.pk == self.branch_id

    def has_restaurant_access(self, restaurant_id):
        if self.is_super_admin:
            return True
        return self.restaurant_id is not None and str(self.restaurant_id) == str(restaurant_id)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'phone': self.phone,
            'role': self.role,
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'lifecycle_state': self.lifecycle_state,
        }
