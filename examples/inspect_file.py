import sys

import OpenPGPInspector

# Show the packet tree of a message or key, fetching signers from the key server
with OpenPGPInspector.KeyResolver() as resolver:
    with OpenPGPInspector.Inspector(resolver) as inspector:
        document = OpenPGPInspector.Document()
        with open(sys.argv[1], 'rb') as f:
            analysis = inspector.analyze(f.read(), document)

        # Certifications are checked in the background, give them a moment
        if not inspector.wait(10):
            print("Some signatures are still being checked")
        analysis.cancel()

        print(OpenPGPInspector.render(document.records), end='')
