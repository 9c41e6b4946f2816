#!/usr/bin/env python3

import ssdp_discovery as ssdp

#ssdp.init_logging("debug")

class PrintingObserver(ssdp.SsdpDiscoveryObserver):
    def on_service_discovered(self, discovery, service):
        print(service.host, service.search_target, service.location)

    def on_discovery_failed(self, discovery, error):
        print(f"Discovery failed: {error}")

observer = PrintingObserver()
# all parameters to SsdpDiscovery are optional; they allow you to set the address to bind to, etc.
discovery = ssdp.SsdpDiscovery(observer)
# Responses are delivered to the observer from a background thread until the timeout elapses.
discovery.discover_service(timeout=3.0, search_target="upnp:rootdevice")
try:
    discovery.wait()
finally:
    # It is possible to stop early, e.g., once you found what you're looking for
    discovery.stop()
