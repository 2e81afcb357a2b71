import argparse
import json
import os
import time
import traceback

from smz.data.yf_loader import YFinanceLoader
from smz.detectors.checklist import evaluate_checklist
from smz.engine import ZoneEngine
from smz.utils.config_loader import load_config, load_credentials, load_engine_config
from smz.utils.logger import setup_logger
from smz.utils.notifications import TelegramNotifier


def run_symbol(symbol, engine, data_loader, timeframes, notifier, config, logger):
    bars = data_loader.fetch_timeframes(symbol, timeframes)
    if not bars:
        logger.warning(f"No bars for {symbol}; skipping this cycle")
        return None

    result = engine.compute(bars)
    live = [z for z in result.zones if not z.is_exhausted]
    logger.info(f"{symbol}: {len(result.zones)} zones ({len(live)} live), "
                f"{len(result.gaps)} gaps, {len(result.alerts)} alerts")

    for zone in live[-config['system'].get('log_top_zones', 5):]:
        checklist = evaluate_checklist(zone)
        logger.info(f"  {zone.id} [{zone.status.value}] {zone.bottom:.5f}-{zone.top:.5f} "
                    f"score={zone.score:.2f} checklist={checklist.score}")

    for alert in result.alerts:
        logger.info(f"ALERT {symbol}: {alert.type.value} {alert.ref_id} @ {alert.price:.5f}")
    if result.alerts and config['telegram'].get('enabled', False):
        notifier.send_alerts(symbol, result.alerts)

    return result


def export_snapshot(symbol, result, output_dir):
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, f"zones_{symbol}.json")
    with open(path, "w") as f:
        json.dump(result.to_dict(), f, indent=4)
    return path


def main():
    parser = argparse.ArgumentParser(description="Smart Money Zone Scanner")
    parser.add_argument("--config", type=str, default="config.yaml", help="Path to config file")
    parser.add_argument("--env", type=str, default=".env", help="Path to .env file")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    args = parser.parse_args()

    config = load_config(args.config)
    system = config.get('system', {})
    logger = setup_logger(log_level=system.get('log_level', 'INFO'), log_file=system.get('log_file'))
    logger.info(f"Starting Zone Scanner with config: {args.config} and env: {args.env}")

    engine_config = load_engine_config(config)
    creds = load_credentials(args.env)

    telegram_cfg = config.setdefault('telegram', {})
    notifier = TelegramNotifier(
        token=creds.get('telegram_token'),
        chat_id=creds.get('telegram_chat_id'),
        enabled=telegram_cfg.get('enabled', False)
    )

    data_loader = YFinanceLoader(config)
    timeframes = list(engine_config.base_timeframes) + [engine_config.confirmation_timeframe]
    symbols = system.get('symbol_list', [])
    engines = {symbol: ZoneEngine(engine_config) for symbol in symbols}
    poll_interval = system.get('poll_interval', 300)
    output_dir = system.get('output_dir', 'output')

    logger.info(f"Watching {symbols} on {timeframes}")

    try:
        while True:
            for symbol in symbols:
                try:
                    result = run_symbol(symbol, engines[symbol], data_loader, timeframes,
                                        notifier, config, logger)
                    if result is not None:
                        export_snapshot(symbol, result, output_dir)
                except Exception as e:
                    logger.error(f"Error processing {symbol}: {e}")
                    logger.error(traceback.format_exc())

            if args.once:
                break
            time.sleep(poll_interval)

    except KeyboardInterrupt:
        logger.info("Scanner stopping...")


if __name__ == "__main__":
    main()
