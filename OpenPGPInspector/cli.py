""" openpgp-inspect: show the packets of an OpenPGP message and check its signatures """

import logging

import click

from . import config
from .interpreter import Inspector
from .records import Document
from .render import render
from .resolver import KeyResolver

log = logging.getLogger(__name__)

@click.command('openpgp-inspect')
@click.argument('input', type=click.File('rb'), default='-')
@click.option('--keyserver', default=None, help='HKP lookup URL (default: %s)' % config.KEYSERVER_URL)
@click.option('--timeout', type=float, default=None,
              help='Seconds to wait for background verification (default: %s)' % config.WAIT_TIMEOUT_SECONDS)
@click.option('--fetch-keys', is_flag=True, help='Retrieve and show every referenced public key')
@click.option('-v', '--verbose', is_flag=True, help='Debug logging')
def main(input, keyserver, timeout, fetch_keys, verbose):
    """ Inspect the OpenPGP message in INPUT (a file, or - for stdin) """
    logging.basicConfig(level=verbose and logging.DEBUG or logging.WARNING,
                        format='%(asctime)s %(levelname)-10s %(name)s %(message)s')
    data = input.read()
    if timeout is None:
        timeout = config.WAIT_TIMEOUT_SECONDS

    document = Document()
    with KeyResolver(keyserver_url=keyserver) as resolver:
        with Inspector(resolver) as inspector:
            analysis = inspector.analyze(data, document)
            if fetch_keys:
                for record_id in sorted(analysis.lookups()):
                    analysis.retrieve_public_key(record_id)
            if not inspector.wait(timeout):
                log.warning("Background verification still running after %s seconds", timeout)
            analysis.cancel()
            click.echo(render(document.records), nl=False)

if __name__ == '__main__':
    main()
