from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'splits'

router = DefaultRouter()
router.register(r'', views.SplitViewSet, basename='split')

urlpatterns = [
    # GET    /api/splits/               - List open splits (filters: owner, type, shipping_type, status, search)
    # POST   /api/splits/               - Create APP split
    # GET    /api/splits/{id}/          - Get split details
    # PATCH  /api/splits/{id}/          - Update split (owner or admin)
    # POST   /api/splits/{id}/cancel/   - Cancel split, refund all orders
    path('', include(router.urls)),
]
