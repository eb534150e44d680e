"""Builders for the Kubernetes objects used across tests."""

import base64
from types import SimpleNamespace


def service(port=443, target_port=6443, protocol="TCP"):
    return SimpleNamespace(spec=SimpleNamespace(ports=[
        SimpleNamespace(name="https", port=port, target_port=target_port, protocol=protocol),
    ]))


def subset(ready=(), not_ready=(), port=6443, protocol="TCP"):
    return SimpleNamespace(
        addresses=[SimpleNamespace(ip=ip) for ip in ready] or None,
        not_ready_addresses=[SimpleNamespace(ip=ip) for ip in not_ready] or None,
        ports=[SimpleNamespace(name="https", port=port, protocol=protocol)],
    )


def endpoints(*subsets):
    return SimpleNamespace(subsets=list(subsets))


def secret(data=None):
    encoded = {k: base64.b64encode(v).decode() for k, v in (data or {}).items()}
    return SimpleNamespace(metadata=SimpleNamespace(name="router-certs"), data=encoded or None)


def ingress_config(domain="example.com"):
    return {"metadata": {"name": "cluster"}, "spec": {"domain": domain}}


def auth_config(auth_type="IntegratedOAuth", metadata_name=""):
    return {"metadata": {"name": "cluster"},
            "spec": {"type": auth_type, "oauthMetadata": {"name": metadata_name}}}


def route(host="oauth-openshift.example.com", admitted=True, service_name="oauth-openshift",
          target_port=6443, termination="passthrough", insecure_policy="Redirect", uid="uid-1"):
    spec = {
        "host": host,
        "to": {"kind": "Service", "name": service_name},
        "port": {"targetPort": target_port},
    }
    if termination is not None:
        spec["tls"] = {"termination": termination, "insecureEdgeTerminationPolicy": insecure_policy}
    return {
        "metadata": {"name": "oauth-openshift", "namespace": "openshift-authentication", "uid": uid},
        "spec": spec,
        "status": {"ingress": [{
            "host": host,
            "routerName": "default",
            "conditions": [{"type": "Admitted", "status": "True" if admitted else "False"}],
        }]},
    }
