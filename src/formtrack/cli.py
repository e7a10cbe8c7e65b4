"""Command line interface for FormTrack."""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .browser.session import CaptureSession
from .core.config import CaptureConfig, load_configuration
from .core.models import SubmissionSource
from .core.report import CaptureReport
from .runtime.channels import ConsoleChannel, FanoutChannel, ReportChannel, WebhookChannel


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="FormTrack - captura de envios de formulários")
    parser.add_argument("-u", "--url", required=True, help="URL inicial aberta no navegador")
    parser.add_argument("--report", default="formtrack_submissions.json", help="Arquivo JSON com os envios capturados")
    parser.add_argument("--webhook", default=None, help="URL que recebe cada envio via POST")
    parser.add_argument("--headless", action="store_true", default=None, help="Executa o Chromium sem interface")
    parser.add_argument("--duration", type=float, default=None, help="Encerra após N segundos")
    parser.add_argument("--verbose", action="store_true", help="Exibe logs de depuração")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_session(config: CaptureConfig, report: CaptureReport) -> tuple[CaptureSession, Optional[WebhookChannel]]:
    webhook = WebhookChannel(config.webhook_url) if config.webhook_url else None
    channels = [ConsoleChannel(), ReportChannel(report, config.report_path)]
    if webhook is not None:
        channels.append(webhook)
    return CaptureSession(config, FanoutChannel(channels)), webhook


def print_summary(report: CaptureReport) -> None:
    if not report.submissions:
        print(" - Nenhum envio de formulário foi capturado.")
        return
    for source in SubmissionSource:
        count = len(report.by_source(source))
        if count:
            print(f" - {source.value}: {count} envio(s)")


def run_cli(argv: Optional[List[str]] = None) -> None:
    args = parse_arguments(argv)
    configure_logging(args.verbose)
    config = load_configuration(
        args.url,
        args.report,
        webhook_url=args.webhook,
        headless=args.headless,
        verbose=args.verbose,
    )

    report = CaptureReport(seed_url=config.start_url or "")
    session, webhook = build_session(config, report)

    print("=== FormTrack ===")
    print(f"[*] Abrindo {config.start_url}")
    if webhook is not None:
        webhook.start()
        print(f"[+] Webhook ativo em {config.webhook_url}")
    print("[*] Interaja com a página; feche o navegador ou pressione Ctrl+C para encerrar.")

    try:
        session.run(duration=args.duration)
    except KeyboardInterrupt:
        print("\n[!] Interrompido pelo usuário.")
    finally:
        if webhook is not None:
            webhook.flush()
            webhook.stop()

    report.save(config.report_path)
    print(f"\n[+] Relatório salvo em {config.report_path}")
    print_summary(report)


def main() -> None:
    run_cli()


if __name__ == "__main__":
    main()
