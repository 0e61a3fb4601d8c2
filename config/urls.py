from django.contrib import admin
from django.urls import path

# API/UI 라우팅은 별도 서비스 담당, 여기서는 관리자 화면만 노출
urlpatterns = [
    path('admin/', admin.site.urls),
]
