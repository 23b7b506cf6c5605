"""Payment URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.payments.views import (
    CashOnDeliveryView,
    CreatePaymentOrderView,
    PaymentWebhookView,
    VerifyPaymentView,
)

urlpatterns = [
    path("payments/create-order/", CreatePaymentOrderView.as_view(), name="payment-create-order"),
    path("payments/verify/", VerifyPaymentView.as_view(), name="payment-verify"),
    path("payments/cod/", CashOnDeliveryView.as_view(), name="payment-cod"),
    path("payments/webhook/", PaymentWebhookView.as_view(), name="payment-webhook"),
]
