from django.contrib import admin

from .models import Conversation, ConversationMessage, ConversationParticipant


class ConversationParticipantInline(admin.TabularInline):
    model = ConversationParticipant
    extra = 0
    readonly_fields = ['user', 'role', 'joined_at']


class ConversationMessageInline(admin.TabularInline):
    model = ConversationMessage
    extra = 0
    readonly_fields = ['event_tag', 'text', 'created_at']


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ['title', 'split', 'external_thread_id', 'is_readonly', 'created_at']
    list_filter = ['is_readonly', 'created_at']
    search_fields = ['title', 'external_thread_id']
    readonly_fields = ['external_thread_id', 'created_at', 'updated_at']
    inlines = [ConversationParticipantInline, ConversationMessageInline]
