import uuid

import core.models
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email', models.EmailField(max_length=254, unique=True, verbose_name='Correo electrónico')),
                ('first_name', models.CharField(max_length=100, verbose_name='Nombre')),
                ('last_name', models.CharField(blank=True, max_length=100, verbose_name='Apellido')),
                ('phone', models.CharField(blank=True, max_length=15, verbose_name='Teléfono')),
                ('role', models.CharField(choices=[('ADMIN', 'Administrador'), ('CUSTOMER', 'Cliente'), ('DRIVER', 'Motorizado'), ('SUPERVISOR', 'Supervisor')], default='CUSTOMER', max_length=20, verbose_name='Rol')),
                ('status', models.CharField(choices=[('active', 'Activo'), ('inactive', 'Inactivo')], default='active', max_length=10, verbose_name='Estado')),
                ('company', models.CharField(blank=True, max_length=150, verbose_name='Empresa')),
                ('ruc', models.CharField(blank=True, max_length=11, verbose_name='RUC')),
                ('business_name', models.CharField(blank=True, max_length=200, verbose_name='Razón social')),
                ('vehicle_plate', models.CharField(blank=True, max_length=10, verbose_name='Placa')),
                ('vehicle_model', models.CharField(blank=True, max_length=50, verbose_name='Modelo')),
                ('vehicle_color', models.CharField(blank=True, max_length=30, verbose_name='Color')),
                ('license_number', models.CharField(blank=True, max_length=20, verbose_name='Licencia')),
                ('route', models.CharField(blank=True, help_text='Grupo de zona que cubre el motorizado (NOR, SUR, EST, OES, SJL)', max_length=10, verbose_name='Ruta')),
                ('is_active', models.BooleanField(default=True)),
                ('is_staff', models.BooleanField(default=False)),
                ('date_joined', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'Usuario',
                'verbose_name_plural': 'Usuarios',
                'ordering': ['-date_joined'],
            },
            managers=[
                ('objects', core.models.UserManager()),
            ],
        ),
    ]
