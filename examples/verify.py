import sys

import OpenPGPInspector
from OpenPGPInspector.records import RecordKind

# Check one-pass signatures inline, without a background pool
with OpenPGPInspector.KeyResolver() as resolver:
    verifier = OpenPGPInspector.SignatureVerifier(resolver)
    interpreter = OpenPGPInspector.Interpreter(verifier)
    with open(sys.argv[1], 'rb') as f:
        root = interpreter.read_input(f.read())

    for record in root.walk():
        if record.kind == RecordKind.ERROR:
            print("Error (%s): %s" % (record.error_class, record.heading))
        elif record.kind == RecordKind.NOTICE:
            print("[%s] %s" % (record.status, record.heading))
