import ssl
import warnings

from graphstore.errors import ConfigurationError, SecurityDowngradeWarning
from graphstore.logger import get_logger

logger = get_logger(__name__)


class TrustPolicy:
    """Certificate and hostname verification for HTTPS connections.

    Strict mode uses the platform trust store and standard hostname
    verification. Permissive mode accepts any certificate chain and any
    hostname, which removes the authenticity guarantees of TLS; selecting it
    always emits a :class:`SecurityDowngradeWarning`.
    """

    @staticmethod
    def build(insecure: bool) -> ssl.SSLContext:
        """Create the TLS context.

        Args:
            insecure: Accept any certificate and hostname when True

        Returns:
            A client side ``ssl.SSLContext``

        Raises:
            ConfigurationError: if the TLS primitives cannot be set up
        """
        try:
            if not insecure:
                return ssl.create_default_context(ssl.Purpose.SERVER_AUTH)

            context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            # check_hostname must be cleared before verify_mode can be CERT_NONE
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Could not create TLS context: {e}") from e

        warnings.warn(
            "Enabled insecure SSL/TLS: certificates and hostnames are not verified",
            SecurityDowngradeWarning,
            stacklevel=2,
        )
        logger.warning("Insecure SSL/TLS enabled", verify_mode="CERT_NONE")
        return context
