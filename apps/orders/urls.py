from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'orders'

router = DefaultRouter()
router.register(r'', views.OrderViewSet, basename='order')

urlpatterns = [
    # GET    /api/orders/                    - List my orders (placed or received)
    # POST   /api/orders/                    - Create order for a payment authorization
    # GET    /api/orders/{id}/               - Get order details
    # PATCH  /api/orders/{id}/               - Change shipping address

    # POST   /api/orders/quote/              - Price seats, open payment authorization
    # POST   /api/orders/cancel_owner/       - Owner cancels a client's order
    # POST   /api/orders/cancel_client/      - Client cancels own order
    # POST   /api/orders/{id}/ship/          - Owner marks shipped
    # POST   /api/orders/{id}/receive/       - Client marks received
    # POST   /api/orders/{id}/request_refund/ - Client requests refund
    # POST   /api/orders/{id}/confirm_refund/ - Owner confirms refund
    path('', include(router.urls)),
]
