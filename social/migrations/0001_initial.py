import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
import pytz
from django.conf import settings
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
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('id', models.CharField(help_text='Stable user id issued by the identity provider', max_length=64, primary_key=True, serialize=False)),
                ('full_name', models.CharField(blank=True, help_text='Display name', max_length=150)),
                ('profile_picture', models.URLField(blank=True, default='', help_text='Avatar URL', max_length=500)),
                ('cover_photo', models.URLField(blank=True, default='', help_text='Cover photo URL', max_length=500)),
                ('bio', models.TextField(blank=True, default='Hey there! I am using PingUp.', help_text='Profile biography or description', max_length=500)),
                ('location', models.CharField(blank=True, default='', help_text='Free-form location', max_length=120)),
                ('timezone', models.CharField(choices=[(tz, tz) for tz in pytz.all_timezones], default='UTC', help_text="User's preferred timezone for display", max_length=100)),
                ('last_active_at', models.DateTimeField(blank=True, default=None, help_text='Last activity timestamp for online status', null=True)),
                ('connections', models.ManyToManyField(blank=True, help_text='Accepted mutual connections', to=settings.AUTH_USER_MODEL)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='ConnectionRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pair_key', models.CharField(editable=False, help_text="Sorted 'a|b' key of the two user ids", max_length=140, unique=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted')], default='pending', max_length=10)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text='Creation timestamp (rate limit window)')),
                ('from_user', models.ForeignKey(help_text='User who asked to connect', on_delete=django.db.models.deletion.CASCADE, related_name='sent_connection_requests', to=settings.AUTH_USER_MODEL)),
                ('to_user', models.ForeignKey(help_text='User who may accept', on_delete=django.db.models.deletion.CASCADE, related_name='received_connection_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['from_user', 'created_at'], name='social_conn_from_us_6c1b2e_idx'),
                    models.Index(fields=['to_user', 'status'], name='social_conn_to_user_3f9a41_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Follow',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, help_text='When the follow happened')),
                ('followed', models.ForeignKey(help_text='User being followed', on_delete=django.db.models.deletion.CASCADE, related_name='followers', to=settings.AUTH_USER_MODEL)),
                ('follower', models.ForeignKey(help_text='User who is following', on_delete=django.db.models.deletion.CASCADE, related_name='following', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(fields=('follower', 'followed'), name='unique_follow_edge'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Message',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('text', models.TextField(blank=True, default='', help_text='Message text content')),
                ('message_type', models.CharField(choices=[('text', 'Text'), ('image', 'Image')], default='text', max_length=10)),
                ('media_url', models.URLField(blank=True, default='', help_text='Image URL (only for image messages)', max_length=500)),
                ('seen', models.BooleanField(default=False, help_text='Read receipt flag')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text='Send time shown to users')),
                ('from_user', models.ForeignKey(help_text='User who sent this message', on_delete=django.db.models.deletion.CASCADE, related_name='sent_messages', to=settings.AUTH_USER_MODEL)),
                ('to_user', models.ForeignKey(help_text='User this message is addressed to', on_delete=django.db.models.deletion.CASCADE, related_name='received_messages', to=settings.AUTH_USER_MODEL)),
                ('reply_to', models.ForeignKey(blank=True, db_constraint=False, help_text='Message this one replies to (may dangle after deletion)', null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='replies', to='social.message')),
            ],
            options={
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['to_user', 'seen'], name='social_mess_to_user_8d2c07_idx'),
                    models.Index(fields=['from_user', 'to_user', 'created_at'], name='social_mess_from_us_b41e93_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('actor', models.JSONField(default=dict, help_text="Snapshot of the acting user's display fields")),
                ('type', models.CharField(choices=[('follow', 'Follow'), ('comment', 'Comment'), ('like', 'Like'), ('share', 'Share')], default='comment', max_length=10)),
                ('data', models.JSONField(blank=True, default=dict, help_text='Opaque payload, e.g. {postId, commentId, text}')),
                ('read', models.BooleanField(default=False, help_text='Whether notification has been read')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('user', models.ForeignKey(help_text='User receiving this notification', on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
