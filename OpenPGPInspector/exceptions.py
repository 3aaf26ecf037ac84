""" Error taxonomy for packet inspection and signature verification.

    DecodeError ends a packet stream, everything else is reported inline and
    the interpreting pass carries on.
"""

class InspectorException(Exception):
    pass # Everything inherited

class DecodeError(InspectorException):
    """ Malformed armor, packet framing or packet fields """
    pass

class StructuralError(InspectorException):
    """ Packets arrived in an order the verification state machine rejects """
    pass

class ResolutionError(InspectorException):
    """ A public key could not be fetched from the key server """
    def __init__(self, message, key_id=None, status=None, body=None):
        super(ResolutionError, self).__init__(message)
        self.key_id = key_id
        self.status = status
        self.body = body

class VerificationError(InspectorException):
    pass

class MissingKeyIdError(VerificationError):
    def __init__(self, message="signature missing Key ID"):
        super(MissingKeyIdError, self).__init__(message)

class KeyNotFoundError(VerificationError):
    def __init__(self, message="could not find public key"):
        super(KeyNotFoundError, self).__init__(message)

class SignatureMismatchError(VerificationError):
    pass

class UnsupportedError(VerificationError):
    pass
