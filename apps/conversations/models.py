# ==========================================
# apps/conversations/models.py
# ==========================================

from django.db import models
import uuid


class ParticipantRole(models.TextChoices):
    FULL = 'full', 'Full'
    READONLY = 'readonly', 'Read-only'


class SplitRoomMessageType(models.TextChoices):
    CLIENT_JOINED = 'client-joined', 'Client joined'
    CLIENT_EXITED = 'client-exited', 'Client exited'
    EXPIRATION_NOTICE = 'expiration-notice', 'Expiration notice'
    SPLIT_CREATED = 'split-created', 'Split created'
    SPLIT_CANCELLED = 'split-cancelled', 'Split cancelled'
    SPLIT_COMPLETED = 'split-completed', 'Split completed'
    SPLIT_RESET = 'split-reset', 'Split reset'
    SPLIT_EXTENDED = 'split-extended', 'Split extended'


class Conversation(models.Model):
    """Local record of a Split's discussion thread held by the messaging provider."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    split = models.OneToOneField('splits.Split', on_delete=models.CASCADE, related_name='conversation')
    title = models.CharField(max_length=200)
    external_thread_id = models.CharField(max_length=64, unique=True)
    is_readonly = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'conversations'
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    def has_participant(self, user):
        return self.participants.filter(user=user).exists()

    def get_user_role(self, user):
        try:
            return self.participants.get(user=user).role
        except ConversationParticipant.DoesNotExist:
            return None


class ConversationParticipant(models.Model):
    """User membership in a conversation with role."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    conversation = models.ForeignKey(Conversation, on_delete=models.CASCADE, related_name='participants')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='conversation_memberships')
    role = models.CharField(max_length=20, choices=ParticipantRole.choices, default=ParticipantRole.READONLY)
    joined_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'conversation_participants'
        unique_together = [['conversation', 'user']]
        indexes = [
            models.Index(fields=['conversation', 'role'], name='conversatio_convers_3f1b2a_idx'),
        ]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.user.get_display_name()} in {self.conversation.title} ({self.role})"


class ConversationMessage(models.Model):
    """System message posted to a conversation."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    conversation = models.ForeignKey(Conversation, on_delete=models.CASCADE, related_name='messages')
    text = models.TextField()
    event_tag = models.CharField(max_length=32, choices=SplitRoomMessageType.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'conversation_messages'
        indexes = [
            models.Index(fields=['conversation', 'created_at'], name='conversatio_convers_8c0d4e_idx'),
        ]
        ordering = ['created_at']

    def __str__(self):
        return f"[{self.event_tag}] {self.text[:50]}"
