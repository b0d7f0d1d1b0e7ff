from django.contrib import admin

from .models import Chat, ChatMessage, QuizAttempt


class ChatMessageInline(admin.TabularInline):
    model = ChatMessage
    extra = 0
    ordering = ['position']


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ['summary', 'owner', 'created_at', 'updated_at']
    search_fields = ['summary', 'owner__email']
    inlines = [ChatMessageInline]


admin.site.register(QuizAttempt)
