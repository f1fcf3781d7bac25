#!/usr/bin/env python3
# Copyright 2025 ApeCloud, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
CLI tool for operating the Light operator

Usage:
    python -m light_operator.cli.light_manager --help
    python -m light_operator.cli.light_manager reconcile
    python -m light_operator.cli.light_manager reconcile --namespace default --name desk-lamp
    python -m light_operator.cli.light_manager status --namespace default --name desk-lamp
    python -m light_operator.cli.light_manager gencrd > light-crd.yaml
    python -m light_operator.cli.light_manager serve-health
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

import yaml

from light_operator.config import settings, setup_logging

logger = logging.getLogger(__name__)


async def run_reconciliation(namespace: Optional[str] = None, name: Optional[str] = None):
    """Run one pass over one or all Lights without a task queue"""
    from light_operator.k8s.store import KubernetesLightStore
    from light_operator.tasks.light_task import LightReconcileTask
    from light_operator.tasks.scheduler import LocalReconcileScheduler

    scheduler = LocalReconcileScheduler()
    task = LightReconcileTask(scheduler=scheduler, config=settings, use_lock=False)

    if name:
        targets = [(namespace, name)]
    else:
        store = KubernetesLightStore(settings.kubernetes, field_manager=settings.controller.field_manager)
        try:
            lights = await store.list_lights()
        finally:
            await store.aclose()
        targets = [(light.namespace, light.name) for light in lights]

    logger.info(f"Starting manual reconciliation of {len(targets)} Lights...")
    for target_namespace, target_name in targets:
        await task.run_once(target_namespace, target_name)
    logger.info("Reconciliation completed")

    for request in scheduler.requests:
        print(f"{request.namespace}/{request.name}: next pass in {request.delay_seconds}s")


async def get_light_status(namespace: str, name: str):
    """Print the stored conditions of a Light"""
    from light_operator.k8s.store import KubernetesLightStore

    store = KubernetesLightStore(settings.kubernetes, field_manager=settings.controller.field_manager)
    try:
        light = await store.get_light(namespace, name)
    finally:
        await store.aclose()

    if light is None:
        print(f"Light {namespace}/{name} not found")
        return None

    conditions = [c.model_dump(mode="json", by_alias=True) for c in light.copy_conditions()]
    print(json.dumps(conditions, indent=2, ensure_ascii=False))
    return conditions


def print_crd():
    from light_operator.k8s.crd import generate_crd

    print(yaml.safe_dump(generate_crd(), sort_keys=False), end="")


def serve_health():
    import uvicorn

    from light_operator.app import app

    if not settings.health_check.enable_server:
        logger.info("Health check server disabled")
        return
    uvicorn.run(app, host=settings.health_check.host, port=settings.health_check.port)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Light Operator CLI")
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Reconcile command
    reconcile_parser = subparsers.add_parser('reconcile', help='Run reconciliation manually')
    reconcile_parser.add_argument('--namespace', default='default', help='Light namespace')
    reconcile_parser.add_argument('--name', help='Light name (default: all Lights)')

    # Status command
    status_parser = subparsers.add_parser('status', help='Show the conditions of a Light')
    status_parser.add_argument('--namespace', default='default', help='Light namespace')
    status_parser.add_argument('--name', required=True, help='Light name')

    subparsers.add_parser('gencrd', help='Print the Light CustomResourceDefinition')
    subparsers.add_parser('serve-health', help='Serve the health check endpoint')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(settings)

    try:
        if args.command == 'reconcile':
            from light_operator.smarthome import check_smart_home_config

            check_smart_home_config(settings)
            asyncio.run(run_reconciliation(args.namespace, args.name))
        elif args.command == 'status':
            asyncio.run(get_light_status(args.namespace, args.name))
        elif args.command == 'gencrd':
            print_crd()
        elif args.command == 'serve-health':
            serve_health()
        else:
            print(f"Unknown command: {args.command}")
            return 1
    except Exception as e:
        logger.error(f"Command failed: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
