"""
Expectation presets for the WildFly feature packs.

Each feature pack variant is the common fragment plus its own additions.
Callers compose them with `expectations_for_variant()` or pick fragments
and compose them by hand.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from provcheck.core.diff.expectations import ExpectationFragment, ExpectationSet, compose_expectations, fragment
from provcheck.core.errors import ConfigError

NO_LAYER_COMMON = (
    # not used
    "ibm.jdk",
    "javax.api",
    "javax.sql.api",
    "javax.xml.stream.api",
    "sun.jdk",
    "sun.scripting",
    # test-all-layers is non-ha and has no layer that provides jgroups
    "org.jboss.as.clustering.jgroups",
    "org.wildfly.extension.datasources-agroal",
    "io.agroal",
    # legacy subsystems without layers
    "org.wildfly.extension.picketlink",
    "org.jboss.as.jsr77",
    "org.keycloak.keycloak-adapter-subsystem",
    "org.jboss.as.security",
    "org.wildfly.security.http.sfbasic",
    "org.eclipse.persistence",
    # resource adapter not associated with any layer
    "org.jboss.genericjms",
    # appclient support is not provided by a layer
    "org.jboss.as.appclient",
    "org.jboss.metadata.appclient",
    "org.bouncycastle",
    "org.jboss.resteasy.resteasy-rxjava2",
    "org.jboss.resteasy.resteasy-tracing-api",
    "org.wildfly.security.jakarta.client.resteasy",
    "org.wildfly.security.jakarta.client.webservices",
    # alternative messaging protocols, selected by attribute value
    "org.apache.activemq.artemis.protocol.amqp",
    "org.apache.qpid.proton",
    "org.apache.activemq.artemis.protocol.hornetq",
    "org.apache.activemq.artemis.protocol.stomp",
    "org.hornetq.client",
    "org.wildfly.extension.rts",
    "org.jboss.narayana.rts",
    "org.jboss.as.xts",
    "org.wildfly.reactive.dep.jts",
    "org.wildfly.event.logger",
    # test-all-layers uses microprofile-opentracing instead of opentelemetry
    "org.wildfly.extension.opentelemetry",
    "org.wildfly.extension.opentelemetry-api",
    "io.opentelemetry.exporter",
    "io.opentelemetry.sdk",
    "io.opentelemetry.proto",
    "io.opentelemetry.otlp",
    # micrometer is not in the standard configs
    "io.micrometer",
    "org.wildfly.extension.micrometer",
    "org.wildfly.micrometer.deployment",
    "com.squareup.okhttp3",
    "org.jetbrains.kotlin.kotlin-stdlib",
    "com.google.protobuf",
    "org.infinispan.cdi.common",
    "org.infinispan.cdi.embedded",
    "org.infinispan.cdi.remote",
    "org.infinispan.counter",
    "org.infinispan.lock",
    "org.infinispan.query",
    "org.infinispan.query.core",
    # jgroups AWS protocols
    "org.jgroups.aws",
    "software.amazon.awssdk.s3",
    "org.wildfly.extension.microprofile.metrics-smallrye",
    "org.wildfly.extension.microprofile.opentracing-smallrye",
    "org.apache.xerces",
)

NO_LAYER_WILDFLY_EE = (
    "org.jboss.xnio.netty.netty-xnio-transport",
    # no patching modules in layers
    "org.jboss.as.patching",
    "org.jboss.as.patching.cli",
    # only referenced by org.jboss.resteasy.resteasy-rxjava2
    "io.reactivex.rxjava2.rxjava",
)

NO_LAYER_EXPANSION: Tuple[str, ...] = ()

NO_LAYER_WILDFLY = (
    "org.wildfly.extension.microprofile.metrics-smallrye",
    "org.wildfly.extension.microprofile.opentracing-smallrye",
)

NO_LAYER_WILDFLY_PREVIEW = (
    # preview standard config uses micrometer instead of metrics
    "org.wildfly.extension.metrics",
    # fault tolerance depends on MP metrics
    "io.smallrye.fault-tolerance",
    "org.eclipse.microprofile.fault-tolerance.api",
    "org.wildfly.extension.microprofile.fault-tolerance-smallrye",
    "org.wildfly.microprofile.fault-tolerance-smallrye.deployment",
    "org.hibernate.search.mapper.orm.coordination.outboxpolling",
)

NOT_REFERENCED_COMMON = (
    # injected by logging
    "org.apache.logging.log4j.api",
    "org.jboss.logmanager.log4j2",
    # injected by ee
    "org.wildfly.naming",
    # injected by jaxrs
    "org.jboss.resteasy.resteasy-json-binding-provider",
    "org.jboss.resteasy.resteasy-json-p-provider",
    "org.jboss.as.console",
    # tooling
    "org.jboss.as.domain-add-user",
    "org.jboss.as.domain-http-error-context",
    "org.jboss.as.jsf-injection",
    # brought by the feature pack config
    "org.jboss.as.product",
    "org.jboss.as.standalone",
    "org.jboss.logging.jul-to-slf4j-stub",
    "org.jboss.resteasy.resteasy-client-microprofile",
    # webservices tooling
    "org.jboss.ws.tools.common",
    "org.jboss.ws.tools.wsconsume",
    "org.jboss.ws.tools.wsprovide",
    "gnu.getopt",
    "org.wildfly.security.elytron-tool",
    "org.wildfly.bootable-jar",
    # extensions not in the default config
    "org.wildfly.extension.clustering.singleton",
    "org.wildfly.extension.microprofile.health-smallrye",
    "org.eclipse.microprofile.health.api",
    "io.smallrye.health",
    "org.wildfly.extension.microprofile.lra-coordinator",
    "org.wildfly.extension.microprofile.lra-participant",
    "org.jboss.narayana.rts.lra-coordinator",
    "org.jboss.narayana.rts.lra-participant",
    "org.eclipse.microprofile.lra.api",
    "org.wildfly.extension.microprofile.openapi-smallrye",
    "org.eclipse.microprofile.openapi.api",
    "io.smallrye.openapi",
    "com.fasterxml.jackson.dataformat.jackson-dataformat-yaml",
    "org.wildfly.extension.microprofile.reactive-messaging-smallrye",
    "org.wildfly.extension.microprofile.telemetry",
    "org.wildfly.extension.microprofile.reactive-streams-operators-smallrye",
    "org.wildfly.reactive.mutiny.reactive-streams-operators.cdi-provider",
    "io.vertx.client",
    # added dynamically by ee-security and mp-jwt deployment processors
    "org.wildfly.security.jakarta.security",
    # injected by sar
    "org.jboss.as.system-jmx",
    # loaded reflectively by the saaj FactoryFinder
    "org.jboss.ws.saaj-impl",
    "org.jboss.ws.cxf.sts",
)

NOT_REFERENCED_WILDFLY_EE = (
    "io.netty.netty-codec-dns",
    "io.netty.netty-codec-http2",
    "io.netty.netty-resolver-dns",
    # injected by ee
    "jakarta.json.bind.api",
    # injected by jpa
    "org.hibernate.search.orm",
    "org.hibernate.search.backend.elasticsearch",
    "org.hibernate.search.backend.lucene",
    "org.elasticsearch.client.rest-client",
    "com.google.code.gson",
    "com.carrotsearch.hppc",
    "org.apache.lucene",
    "wildflyee.api",
)

NOT_REFERENCED_EXPANSION: Tuple[str, ...] = ()

NOT_REFERENCED_WILDFLY: Tuple[str, ...] = ()

NOT_REFERENCED_WILDFLY_PREVIEW = (
    "org.wildfly.extension.metrics",
    "org.hibernate.search.mapper.orm.coordination.outboxpolling",
    "org.apache.avro",
)

COMMON = fragment("common", unreferenced=NOT_REFERENCED_COMMON, unused_in_all_layers=NO_LAYER_COMMON)
WILDFLY_EE = fragment("wildfly-ee", unreferenced=NOT_REFERENCED_WILDFLY_EE, unused_in_all_layers=NO_LAYER_WILDFLY_EE)
EXPANSION = fragment("expansion", unreferenced=NOT_REFERENCED_EXPANSION, unused_in_all_layers=NO_LAYER_EXPANSION)
WILDFLY = fragment("wildfly", unreferenced=NOT_REFERENCED_WILDFLY, unused_in_all_layers=NO_LAYER_WILDFLY)
WILDFLY_PREVIEW = fragment("wildfly-preview", unreferenced=NOT_REFERENCED_WILDFLY_PREVIEW, unused_in_all_layers=NO_LAYER_WILDFLY_PREVIEW)

VARIANTS: Dict[str, Tuple[ExpectationFragment, ...]] = {
    "wildfly-ee": (COMMON, WILDFLY_EE),
    "wildfly": (COMMON, EXPANSION, WILDFLY),
    "wildfly-preview": (COMMON, EXPANSION, WILDFLY_PREVIEW),
}

# Exemptions match installation names regardless of parent directory.
DEFAULT_BANNED_MODULES: Dict[str, List[str]] = {
    "org.jboss.as.security": [
        "test-all-layers-jpa-distributed",
        "test-all-layers",
        "legacy-security",
        "test-standalone-reference",
    ],
}


def expectations_for_variant(variant: str, *extra: ExpectationFragment) -> ExpectationSet:
    try:
        base = VARIANTS[variant]
    except KeyError:
        raise ConfigError(f"Unknown feature pack variant {variant!r}.", variant=variant, known=sorted(VARIANTS)) from None
    return compose_expectations(*base, *extra)
