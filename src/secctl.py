#!/usr/bin/env python3
"""
CLI tool for the AWS security reconcilers
Provides a kubectl-like interface for Detective and Macie resources
"""

import asyncio
import json
import logging
import sys

import click
import yaml
from tabulate import tabulate

from clients import ClientFactory
from config import get_config
from plugins.reconcilers.base import ReconcilerContext
from plugins.registry import get_registry, register_builtin_plugins
from state import StateStore, apply_result, new_record

logger = logging.getLogger(__name__)


def _load_documents(filename):
    """Read one resource document or a list of them from YAML/JSON"""
    with open(filename, "r") as f:
        if filename.endswith(".yaml") or filename.endswith(".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return data


class SecctlApp:
    """Wires configuration, the registry and the state file together"""

    def __init__(self, config, state_path):
        self.config = config
        self.store = StateStore(state_path)
        register_builtin_plugins()
        self.registry = get_registry()

    def context(self):
        return ReconcilerContext(
            clients=ClientFactory(self.config.aws),
            retry_policy=self.config.retry.to_policy(),
            timeout=self.config.reconciler.operation_timeout,
        )

    def reconciler_for(self, resource_type_name):
        reconciler = self.registry.get_reconciler_for_resource_type(resource_type_name)
        if reconciler is None:
            available = ", ".join(self.registry.list_resource_types()) or "none"
            raise click.ClickException(
                f"Unknown resource type: {resource_type_name}. "
                f"Available types: {available}"
            )
        return reconciler

    def reconcile(self, record):
        reconciler = self.reconciler_for(record["resource_type_name"])
        result = asyncio.run(reconciler.reconcile(record, self.context()))
        return result, apply_result(record, result)


@click.group()
@click.option("--state", "state_path", default=None, help="Path to the state file")
@click.option("--region", default=None, help="AWS region")
@click.option("--profile", default=None, help="AWS profile")
@click.option("--log-level", default=None, help="Logging level")
@click.pass_context
def cli(ctx, state_path, region, profile, log_level):
    """secctl - reconcile Detective and Macie resources from YAML/JSON files"""
    config = get_config()
    if region:
        config.aws.region = region
    if profile:
        config.aws.profile = profile

    logging.basicConfig(
        level=(log_level or config.reconciler.log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    ctx.obj = SecctlApp(config, state_path or config.reconciler.state_file)


@cli.command()
@click.pass_obj
def types(app):
    """List supported resource types"""
    rows = []
    for name in app.registry.list_resource_types():
        info = app.registry.get_resource_handler_info(name)
        rows.append([name, info["service"], ", ".join(info["fields"])])

    click.echo(tabulate(rows, headers=["Type", "Service", "Fields"], tablefmt="grid"))


@cli.command()
@click.argument("filename", type=click.Path(exists=True))
@click.pass_obj
def apply(app, filename):
    """Create or update resources from a YAML/JSON file"""
    failed = False

    for doc in _load_documents(filename):
        name = doc.get("name")
        resource_type_name = doc.get("type")
        if not name or not resource_type_name:
            raise click.ClickException("Each document needs 'name' and 'type'")

        record = app.store.get(name)
        if record is None:
            record = new_record(name, resource_type_name, doc.get("spec") or {})
        elif record["resource_type_name"] != resource_type_name:
            raise click.ClickException(
                f"{name} is a {record['resource_type_name']}, "
                f"not a {resource_type_name}"
            )
        else:
            record = dict(record, spec=doc.get("spec") or {})

        result, record = app.reconcile(record)
        app.store.put(record)
        app.store.save()

        if result.success:
            click.echo(f"{name}: {result.action} - {result.message}")
            if result.identity:
                click.echo(f"  Identity: {result.identity}")
        else:
            failed = True
            click.echo(f"{name}: {result.action or 'error'} - {result.message}", err=True)

    if failed:
        sys.exit(1)


@cli.command()
@click.argument("name", required=False)
@click.option(
    "--output", "-o", type=click.Choice(["table", "json", "yaml"]), default="table"
)
@click.pass_obj
def get(app, name, output):
    """List resources, or show one resource's observed state"""
    if name is None:
        records = app.store.list()
        if output == "json":
            click.echo(json.dumps(records, indent=2))
        elif output == "yaml":
            click.echo(yaml.dump(records, default_flow_style=False))
        else:
            rows = [
                [
                    r["name"],
                    r["resource_type_name"],
                    r.get("identity") or "-",
                    r.get("status"),
                    r.get("last_reconcile_time") or "Never",
                ]
                for r in records
            ]
            headers = ["Name", "Type", "Identity", "Status", "Last Reconcile"]
            click.echo(tabulate(rows, headers=headers, tablefmt="grid"))
        return

    record = app.store.get(name)
    if record is None:
        raise click.ClickException(f"Resource not found: {name}")

    if output == "json":
        click.echo(json.dumps(record, indent=2))
    elif output == "yaml":
        click.echo(yaml.dump(record, default_flow_style=False))
    else:
        click.echo(f"Resource: {record['name']}")
        click.echo(f"Type: {record['resource_type_name']}")
        click.echo(f"Identity: {record.get('identity') or '-'}")
        click.echo(f"Status: {record.get('status')}")
        click.echo(f"Message: {record.get('status_message') or 'N/A'}")
        rows = [[k, json.dumps(v) if isinstance(v, dict) else v]
                for k, v in sorted(record.get("observed", {}).items())]
        if rows:
            click.echo(tabulate(rows, headers=["Field", "Value"], tablefmt="grid"))


@cli.command()
@click.argument("name")
@click.pass_obj
def refresh(app, name):
    """Read a resource back and record its observed state"""
    record = app.store.get(name)
    if record is None:
        raise click.ClickException(f"Resource not found: {name}")

    result, record = app.reconcile(record)
    app.store.put(record)
    app.store.save()

    if not result.success:
        raise click.ClickException(result.message)
    click.echo(f"{name}: {result.message}")


@cli.command()
@click.argument("name")
@click.confirmation_option(prompt="Are you sure you want to delete this resource?")
@click.pass_obj
def delete(app, name):
    """Delete a resource"""
    record = app.store.get(name)
    if record is None:
        raise click.ClickException(f"Resource not found: {name}")

    result, updated = app.reconcile(dict(record, deleted=True))
    if not result.success:
        app.store.put(dict(updated, deleted=False))
        app.store.save()
        raise click.ClickException(result.message)

    app.store.remove(name)
    app.store.save()
    click.echo(f"{name}: deleted")


@cli.command(name="import")
@click.argument("resource_type_name")
@click.argument("identity")
@click.option("--name", "-n", required=True, help="Name to record the resource under")
@click.pass_obj
def import_(app, resource_type_name, identity, name):
    """Adopt an existing resource by its identity"""
    if app.store.get(name) is not None:
        raise click.ClickException(f"Resource already exists: {name}")

    reconciler = app.reconciler_for(resource_type_name)
    result = asyncio.run(
        reconciler.import_resource(resource_type_name, identity, app.context())
    )
    if not result.success:
        raise click.ClickException(result.message)

    record = apply_result(new_record(name, resource_type_name, {}), result)
    app.store.put(record)
    app.store.save()
    click.echo(f"Imported {resource_type_name} {identity} as {name}")


if __name__ == "__main__":
    cli()
