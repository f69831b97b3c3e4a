import uuid

import django.db.models.deletion
import django.utils.timezone
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AIThread",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("title", models.CharField(default="New Chat", help_text="Thread display title", max_length=200)),
                ("model", models.CharField(help_text="Provider model identifier", max_length=100)),
                ("provider", models.CharField(choices=[("openai", "OpenAI"), ("google", "Google (Gemini)")], help_text="Provider resolved from the model identifier", max_length=20)),
                ("system_prompt", models.TextField(blank=True, help_text="Custom system prompt prepended to every generation", null=True)),
                ("source_room_id", models.UUIDField(blank=True, help_text="Chat room bound to this thread for context injection", null=True)),
                ("archived_at", models.DateTimeField(blank=True, help_text="When the thread was archived", null=True)),
                ("owner", models.ForeignKey(help_text="User who owns this thread", on_delete=django.db.models.deletion.CASCADE, related_name="ai_threads", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "ai_thread",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["owner", "-created_at"], name="ai_thread_owner_idx")],
            },
        ),
        migrations.CreateModel(
            name="AIRun",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("status", django_fsm.FSMField(choices=[("running", "Running"), ("completed", "Completed"), ("failed", "Failed")], db_index=True, default="running", help_text="Current run status (managed by FSM)", max_length=50)),
                ("started_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text="When the run started")),
                ("finished_at", models.DateTimeField(blank=True, help_text="When the run completed or failed", null=True)),
                ("error", models.TextField(blank=True, help_text="Failure reason", null=True)),
                ("thread", models.ForeignKey(help_text="Thread this run generates a reply for", on_delete=django.db.models.deletion.PROTECT, related_name="runs", to="ai.aithread")),
            ],
            options={
                "db_table": "ai_run",
                "ordering": ["-started_at"],
                "indexes": [models.Index(fields=["thread", "status"], name="ai_run_thread_status_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "running")),
                        fields=("thread",),
                        name="ai_run_single_running_per_thread",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AIMessage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("role", models.CharField(choices=[("user", "User"), ("assistant", "Assistant"), ("system", "System")], help_text="Transcript role", max_length=20)),
                ("sender_kind", models.CharField(choices=[("owner", "Owner"), ("collaborator", "Collaborator"), ("assistant", "Assistant"), ("system", "System")], help_text="Who produced the message", max_length=20)),
                ("content", models.TextField(help_text="Message text")),
                ("sender", models.ForeignKey(blank=True, help_text="User who wrote the message (null for assistant/system)", null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="ai_messages", to=settings.AUTH_USER_MODEL)),
                ("thread", models.ForeignKey(help_text="Thread this message belongs to", on_delete=django.db.models.deletion.CASCADE, related_name="messages", to="ai.aithread")),
            ],
            options={
                "db_table": "ai_message",
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["thread", "created_at"], name="ai_message_thread_idx")],
            },
        ),
        migrations.CreateModel(
            name="AIQueueItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("sender_kind", models.CharField(choices=[("owner", "Owner"), ("collaborator", "Collaborator"), ("assistant", "Assistant"), ("system", "System")], help_text="Owner or collaborator submission", max_length=20)),
                ("content", models.TextField(help_text="Submitted message text")),
                ("status", django_fsm.FSMField(choices=[("pending", "Pending"), ("consumed", "Consumed"), ("discarded", "Discarded")], db_index=True, default="pending", help_text="Current queue item status (managed by FSM)", max_length=50)),
                ("consumed_at", models.DateTimeField(blank=True, help_text="When a drain claimed the item", null=True)),
                ("discarded_at", models.DateTimeField(blank=True, help_text="When the item was discarded", null=True)),
                ("thread", models.ForeignKey(help_text="Thread the submission targets", on_delete=django.db.models.deletion.CASCADE, related_name="queue_items", to="ai.aithread")),
                ("user", models.ForeignKey(help_text="User who submitted the message", on_delete=django.db.models.deletion.CASCADE, related_name="ai_queue_items", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "ai_queue_item",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        condition=models.Q(("status", "pending")),
                        fields=["thread", "created_at"],
                        name="ai_queue_pending_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AIStreamEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("seq", models.PositiveIntegerField(help_text="Position of the fragment within the run, starting at 0")),
                ("delta", models.TextField(help_text="Text fragment")),
                ("run", models.ForeignKey(help_text="Run that produced the fragment", on_delete=django.db.models.deletion.CASCADE, related_name="stream_events", to="ai.airun")),
                ("thread", models.ForeignKey(help_text="Thread the run belongs to", on_delete=django.db.models.deletion.CASCADE, related_name="stream_events", to="ai.aithread")),
            ],
            options={
                "db_table": "ai_stream_event",
                "ordering": ["seq"],
                "constraints": [
                    models.UniqueConstraint(fields=("run", "seq"), name="unique_ai_stream_event_seq")
                ],
            },
        ),
        migrations.CreateModel(
            name="AIThreadMember",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("permission", models.CharField(choices=[("VIEW", "View"), ("INTERVENE", "Intervene")], default="VIEW", help_text="What the collaborator may do in the thread", max_length=20)),
                ("thread", models.ForeignKey(help_text="Thread shared with the user", on_delete=django.db.models.deletion.CASCADE, related_name="members", to="ai.aithread")),
                ("user", models.ForeignKey(help_text="Collaborating user", on_delete=django.db.models.deletion.CASCADE, related_name="ai_thread_memberships", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "ai_thread_member",
                "constraints": [
                    models.UniqueConstraint(fields=("thread", "user"), name="unique_ai_thread_member")
                ],
            },
        ),
        migrations.CreateModel(
            name="UserLLMKey",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("provider", models.CharField(choices=[("openai", "OpenAI"), ("google", "Google (Gemini)")], help_text="Provider the key authenticates against", max_length=20)),
                ("encrypted_key", models.TextField(help_text="Encrypted API key payload")),
                ("key_last4", models.CharField(help_text="Last characters of the key, for display", max_length=8)),
                ("user", models.ForeignKey(help_text="Key owner", on_delete=django.db.models.deletion.CASCADE, related_name="llm_keys", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "ai_user_llm_key",
                "constraints": [
                    models.UniqueConstraint(fields=("user", "provider"), name="unique_user_llm_key_provider")
                ],
            },
        ),
    ]
