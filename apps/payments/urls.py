from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    # POST   /api/payments/webhooks/stripe/  - Payment provider events
    path('webhooks/stripe/', views.stripe_webhook, name='stripe-webhook'),
]
