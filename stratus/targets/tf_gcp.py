"""Terraform (JSON) target for Google Cloud.

Tables become a Bigtable instance with an autoscaled SSD cluster plus a
Bigtable table holding one column family per column. Functions become
Cloud Functions with a dedicated service account and a storage bucket for
their code archive. Grants become IAM members on the producer, naming the
consumer's service account.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from stratus.core.kinds import ResourceKind
from stratus.core.naming import CaseConvention, NameOptions, generate_name
from stratus.core.node import ResourceNode
from stratus.errors import ConfigurationError
from stratus.permissions.ledger import PermissionGrant
from stratus.permissions.roles import Role
from stratus.resources.table import KEY_FAMILY
from stratus.runtime.env import TableEnv

from .base import BackendSynthesizer, TemplateFragment, TemplateObject
from .factory import register_synthesizer

logger = logging.getLogger(__name__)

TABLE_NAME_OPTS = NameOptions(
    max_len=22,
    disallowed_regex=r"[^a-z0-9_.-]+",
    sep="-",
    case=CaseConvention.LOWERCASE,
)

INSTANCE_NAME_OPTS = NameOptions(
    max_len=22,
    disallowed_regex=r"[^a-z0-9-]+",
    sep="-",
    case=CaseConvention.LOWERCASE,
)

FUNCTION_NAME_OPTS = NameOptions(
    max_len=32,
    disallowed_regex=r"[^a-z0-9-]+",
    sep="-",
    case=CaseConvention.LOWERCASE,
)

SERVICE_ACCOUNT_NAME_OPTS = NameOptions(
    max_len=30,
    disallowed_regex=r"[^a-z0-9-]+",
    sep="-",
    case=CaseConvention.LOWERCASE,
)

BUCKET_NAME_OPTS = NameOptions(
    max_len=54,
    disallowed_regex=r"[^a-z0-9_-]+",
    sep="-",
    case=CaseConvention.LOWERCASE,
    suffix="-code",
)

BIGTABLE_ROLES: Dict[Role, str] = {
    Role.READ: "roles/bigtable.viewer",
    Role.READWRITE: "roles/bigtable.user",
}

FUNCTION_ROLES: Dict[Role, str] = {
    Role.INVOKE: "roles/cloudfunctions.invoker",
}

MAX_FUNCTION_TIMEOUT_SECONDS = 540

PROVIDER_SOURCE = "hashicorp/google"
PROVIDER_VERSION = ">= 5.0"


class GcpSynthesizer(BackendSynthesizer):
    """Synthesizer emitting Terraform JSON for Google Cloud."""

    name = "tf-gcp"
    template_filename = "main.tf.json"
    supports_initial_rows = False
    name_options = {
        ResourceKind.TABLE: TABLE_NAME_OPTS,
        ResourceKind.FUNCTION: FUNCTION_NAME_OPTS,
    }

    def supports_binding(self, consumer_kind: ResourceKind, producer_kind: ResourceKind) -> bool:
        # Only Cloud Functions carry a service account that IAM members can name.
        return consumer_kind is ResourceKind.FUNCTION

    def check_features(self, node: ResourceNode) -> None:
        if not self.settings.project_id:
            raise ConfigurationError(
                "Google Cloud project id is not configured",
                resource=node.path,
                hint="Set [gcp] project_id in stratus.toml or STRATUS_GCP_PROJECT",
            )
        if node.kind is ResourceKind.TABLE and node.config.initial_rows and not self.supports_initial_rows:
            raise self.unsupported(
                node,
                "initial_rows",
                "Bigtable has no bulk-load primitive at provisioning time",
            )
        if node.kind is ResourceKind.FUNCTION:
            timeout = node.config.timeout.total_seconds
            if timeout > MAX_FUNCTION_TIMEOUT_SECONDS:
                raise self.unsupported(
                    node,
                    "timeout",
                    f"{timeout}s exceeds the {MAX_FUNCTION_TIMEOUT_SECONDS}s limit of Cloud Functions",
                )

    # ------------------------------------------------------------------
    # Names and references
    # ------------------------------------------------------------------

    def instance_name(self, table: ResourceNode) -> str:
        return generate_name(table.address, INSTANCE_NAME_OPTS)

    def service_account(self, function: ResourceNode) -> TemplateObject:
        return TemplateObject(
            type="google_service_account",
            logical_id=self.logical_id(function, "ServiceAccount"),
            properties={
                "account_id": generate_name(function.address, SERVICE_ACCOUNT_NAME_OPTS),
                "display_name": f"Service account of {function.path}",
                "project": self.settings.project_id,
            },
        )

    def member_of(self, principal: ResourceNode) -> str:
        return f"serviceAccount:{self.service_account(principal).ref('email')}"

    def table_env(self, table: ResourceNode) -> Dict[str, str]:
        config = table.config
        return TableEnv(
            table_name=table.physical_name or self.physical_name(table),
            connection=self.instance_name(table),
            primary_key=config.primary_key,
            columns=config.columns_spec(),
        ).to_env(table.address.short_addr)

    # ------------------------------------------------------------------
    # Emitters
    # ------------------------------------------------------------------

    def synthesize_table(
        self, node: ResourceNode, grants: List[PermissionGrant], fragment: TemplateFragment
    ) -> None:
        settings = self.settings
        instance = fragment.add(
            TemplateObject(
                type="google_bigtable_instance",
                logical_id=self.logical_id(node, "Instance"),
                properties={
                    "name": self.instance_name(node),
                    "project": settings.project_id,
                    "deletion_protection": False,
                    "cluster": [
                        {
                            "cluster_id": "default",
                            "storage_type": "SSD",
                            "zone": settings.zone,
                            "autoscaling_config": {
                                "min_nodes": 1,
                                "max_nodes": 3,
                                "cpu_target": 35,
                            },
                        }
                    ],
                },
            )
        )
        table = fragment.add(
            TemplateObject(
                type="google_bigtable_table",
                logical_id=self.logical_id(node, "Default"),
                properties={
                    "name": node.physical_name,
                    "instance_name": instance.ref("name"),
                    "project": settings.project_id,
                    "column_family": [
                        {"family": family} for family in [KEY_FAMILY, *sorted(node.config.columns)]
                    ],
                },
            )
        )
        for grant in grants:
            fragment.add(
                TemplateObject(
                    type="google_bigtable_table_iam_member",
                    logical_id=self.logical_id(node, f"Iam_{grant.principal.address.short_addr}"),
                    properties={
                        "project": settings.project_id,
                        "instance": instance.ref("name"),
                        "table": table.ref("name"),
                        "role": BIGTABLE_ROLES[grant.role],
                        "member": self.member_of(grant.principal),
                    },
                )
            )

    def synthesize_function(
        self, node: ResourceNode, grants: List[PermissionGrant], fragment: TemplateFragment
    ) -> None:
        settings = self.settings
        config = node.config

        service_account = fragment.add(self.service_account(node))
        bucket = fragment.add(
            TemplateObject(
                type="google_storage_bucket",
                logical_id=self.logical_id(node, "FunctionCodeBucket"),
                properties={
                    "name": generate_name(node.address, BUCKET_NAME_OPTS),
                    "project": settings.project_id,
                    "location": settings.storage_location,
                    "uniform_bucket_level_access": True,
                    "force_destroy": True,
                },
            )
        )
        archive = fragment.add(
            TemplateObject(
                type="google_storage_bucket_object",
                logical_id=self.logical_id(node, "FunctionCodeBucketObject"),
                properties={
                    "name": f"{node.physical_name}.zip",
                    "bucket": bucket.ref("name"),
                    "source": config.entrypoint,
                },
            )
        )

        env = dict(config.env)
        env.update(self.consumer_env(node))
        env["GOOGLE_PROJECT_ID"] = settings.project_id
        function = fragment.add(
            TemplateObject(
                type="google_cloudfunctions_function",
                logical_id=self.logical_id(node, "Function"),
                properties={
                    "name": node.physical_name,
                    "project": settings.project_id,
                    "region": settings.region,
                    "description": config.description or f"Function {node.path}",
                    "runtime": settings.function_runtime,
                    "entry_point": "handler",
                    "trigger_http": True,
                    "available_memory_mb": config.memory_mb,
                    "timeout": config.timeout.total_seconds,
                    "source_archive_bucket": bucket.ref("name"),
                    "source_archive_object": archive.ref("name"),
                    "service_account_email": service_account.ref("email"),
                    "environment_variables": dict(sorted(env.items())),
                },
            )
        )
        for grant in grants:
            fragment.add(
                TemplateObject(
                    type="google_cloudfunctions_function_iam_member",
                    logical_id=self.logical_id(node, f"Iam_{grant.principal.address.short_addr}"),
                    properties={
                        "project": settings.project_id,
                        "region": settings.region,
                        "cloud_function": function.ref("name"),
                        "role": FUNCTION_ROLES[grant.role],
                        "member": self.member_of(grant.principal),
                    },
                )
            )

    def render(self, fragments: Iterable[TemplateFragment]) -> Dict[str, Any]:
        settings = self.settings
        resources: Dict[str, Dict[str, Any]] = {}
        for fragment in fragments:
            for obj in fragment.objects:
                resources.setdefault(obj.type, {})[obj.logical_id] = obj.properties
        return {
            "terraform": {
                "required_providers": {
                    "google": {"source": PROVIDER_SOURCE, "version": PROVIDER_VERSION},
                },
            },
            "provider": {
                "google": [
                    {"project": settings.project_id, "region": settings.region, "zone": settings.zone}
                ],
            },
            "resource": resources,
        }


register_synthesizer(GcpSynthesizer.name, GcpSynthesizer)


__all__ = [
    "GcpSynthesizer",
    "BIGTABLE_ROLES",
    "FUNCTION_ROLES",
    "TABLE_NAME_OPTS",
    "INSTANCE_NAME_OPTS",
    "FUNCTION_NAME_OPTS",
    "MAX_FUNCTION_TIMEOUT_SECONDS",
]
