"""
Django admin configuration for AI app.

Registers:
    - AIThread (with members inline)
    - AIRun
    - AIQueueItem
    - AIMessage
    - UserLLMKey (encrypted payload hidden)

Usage:
    Access via /admin/ai/
"""

from django.contrib import admin

from .models import AIMessage, AIQueueItem, AIRun, AIThread, AIThreadMember, UserLLMKey


class AIThreadMemberInline(admin.TabularInline):
    model = AIThreadMember
    extra = 0
    raw_id_fields = ["user"]


@admin.register(AIThread)
class AIThreadAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "owner", "model", "provider", "archived_at", "created_at"]
    list_filter = ["provider", "archived_at"]
    search_fields = ["title", "owner__username"]
    raw_id_fields = ["owner"]
    readonly_fields = ["provider", "created_at", "updated_at"]
    inlines = [AIThreadMemberInline]


@admin.register(AIRun)
class AIRunAdmin(admin.ModelAdmin):
    """Runs are written by the orchestrator only."""

    list_display = ["id", "thread", "status", "started_at", "finished_at"]
    list_filter = ["status"]
    readonly_fields = ["thread", "status", "started_at", "finished_at", "error", "created_at"]

    def has_add_permission(self, request):
        return False


@admin.register(AIQueueItem)
class AIQueueItemAdmin(admin.ModelAdmin):
    list_display = ["id", "thread", "user", "sender_kind", "status", "created_at", "consumed_at"]
    list_filter = ["status", "sender_kind"]
    readonly_fields = ["thread", "user", "sender_kind", "content", "status", "consumed_at", "discarded_at"]

    def has_add_permission(self, request):
        return False


@admin.register(AIMessage)
class AIMessageAdmin(admin.ModelAdmin):
    list_display = ["id", "thread", "role", "sender_kind", "sender", "created_at"]
    list_filter = ["role", "sender_kind"]
    search_fields = ["content"]
    raw_id_fields = ["thread", "sender"]


@admin.register(UserLLMKey)
class UserLLMKeyAdmin(admin.ModelAdmin):
    list_display = ["user", "provider", "key_last4", "updated_at"]
    list_filter = ["provider"]
    exclude = ["encrypted_key"]
    readonly_fields = ["user", "provider", "key_last4"]
