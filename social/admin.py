from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.models import Group
from django.urls import reverse
from django.utils.html import format_html

from .models import Comment, Post, StoredFile, User


def _short(text, limit):
    if text:
        return text[:limit] + '...' if len(text) > limit else text
    return "(no text)"


# ==================== ADMIN CLASSES ====================

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('name', 'email', 'connection_count', 'is_staff', 'date_joined')
    search_fields = ('name', 'email')
    ordering = ('-date_joined',)
    filter_horizontal = ('connections', 'groups', 'user_permissions')
    actions = ['activate_users', 'deactivate_users']

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Profile', {'fields': ('name', 'bio', 'avatar', 'connections')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'name', 'password1', 'password2'),
        }),
    )

    def connection_count(self, obj):
        return obj.connections.count()
    connection_count.short_description = 'Connections'

    def activate_users(self, request, queryset):
        count = queryset.update(is_active=True)
        self.message_user(request, f"{count} users activated")
    activate_users.short_description = "Activate selected users"

    def deactivate_users(self, request, queryset):
        count = queryset.update(is_active=False)
        self.message_user(request, f"{count} users deactivated")
    deactivate_users.short_description = "Deactivate selected users"


class CommentInline(admin.TabularInline):
    model = Comment
    extra = 0
    fields = ('name', 'text', 'created_at')
    readonly_fields = ('created_at',)


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ('id', 'user_link', 'created_at', 'text_short', 'like_count')
    search_fields = ('text', 'name', 'user__email')
    raw_id_fields = ('user', 'image')
    filter_horizontal = ('likes',)
    inlines = [CommentInline]

    def user_link(self, obj):
        url = reverse("admin:social_user_change", args=[obj.user.pk])
        return format_html('<a href="{}">{}</a>', url, obj.name)
    user_link.short_description = 'User'
    user_link.admin_order_field = 'name'

    def text_short(self, obj):
        return _short(obj.text, 80)
    text_short.short_description = 'Text'

    def like_count(self, obj):
        return obj.likes.count()
    like_count.short_description = 'Likes'


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'post', 'created_at', 'text_short')
    search_fields = ('text', 'name', 'post__id')
    raw_id_fields = ('post', 'user')

    def text_short(self, obj):
        return _short(obj.text, 50)
    text_short.short_description = 'Text'


@admin.register(StoredFile)
class StoredFileAdmin(admin.ModelAdmin):
    list_display = ('id', 'content_type', 'size', 'original_name', 'created_at')
    list_filter = ('content_type',)
    search_fields = ('original_name', 'name')
    readonly_fields = ('id', 'name', 'content_type', 'size', 'original_name', 'created_at')


# Unregister Django's default Group
admin.site.unregister(Group)

# Basic admin site configuration
admin.site.site_header = "LinkWork Admin"
admin.site.site_title = "LinkWork Admin Portal"
admin.site.index_title = "Welcome"
