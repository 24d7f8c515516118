from abc import ABC, abstractmethod

from consultancy.schemas.booking import PaymentRequest


class PaymentGateway(ABC):
    @abstractmethod
    def request_payment(self, request: PaymentRequest) -> str | None:
        """Start a payment. The outcome arrives later through the payment callback.

        May return a provider reference for the pending transaction.
        """
        raise NotImplementedError
