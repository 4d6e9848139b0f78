from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.models import Group
from django.utils.html import format_html
from django.urls import reverse

from .models import ConnectionRequest, Follow, Message, Notification, User

# ==================== ADMIN CLASSES ====================

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'full_name', 'email', 'last_active_at', 'online', 'date_joined')
    search_fields = ('id', 'username', 'email', 'full_name')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Profile', {'fields': ('full_name', 'bio', 'location', 'profile_picture', 'cover_photo', 'timezone')}),
        ('Presence', {'fields': ('last_active_at',)}),
    )
    add_fieldsets = (
        (None, {'classes': ('wide',), 'fields': ('id', 'username', 'email', 'password1', 'password2')}),
    )

    def online(self, obj):
        return obj.is_online
    online.boolean = True
    online.short_description = 'Online'


@admin.register(Follow)
class FollowAdmin(admin.ModelAdmin):
    list_display = ('id', 'follower', 'followed', 'created_at')
    search_fields = ('follower__username', 'followed__username')


@admin.register(ConnectionRequest)
class ConnectionRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'from_user', 'to_user', 'status', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('from_user__username', 'to_user__username')
    readonly_fields = ('pair_key',)


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'sender_link', 'to_user', 'created_at', 'seen', 'content_short')
    list_filter = ('seen', 'message_type', 'created_at')
    search_fields = ('text', 'from_user__username', 'to_user__username')

    def sender_link(self, obj):
        url = reverse("admin:social_user_change", args=[obj.from_user_id])
        return format_html('<a href="{}">{}</a>', url, obj.from_user.username)
    sender_link.short_description = 'From'
    sender_link.admin_order_field = 'from_user__username'

    def content_short(self, obj):
        if obj.text:
            return obj.text[:50] + '...' if len(obj.text) > 50 else obj.text
        return "(media)"
    content_short.short_description = 'Content'


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'type', 'actor_name', 'created_at', 'read')
    list_filter = ('read', 'type', 'created_at')
    search_fields = ('user__username',)

    def actor_name(self, obj):
        return (obj.actor or {}).get('username') or (obj.actor or {}).get('full_name')
    actor_name.short_description = 'Actor'


# Unregister Django's default Group
admin.site.unregister(Group)

# Basic admin site configuration
admin.site.site_header = "PingUp Admin"
admin.site.site_title = "PingUp Admin Portal"
admin.site.index_title = "Welcome"
