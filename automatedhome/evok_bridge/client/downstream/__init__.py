#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Downstream adapters and codecs

Downstream = transport edges of the bridge (MQTT broker, EVOK gateway)

Each downstream implementation is placed into its own package under:

  automatedhome.evok_bridge.client.downstream.<name>/

Example:
  - mqtt  (paho-mqtt client: "evok/+/+/set" subscription, retained publishes)
  - evok  (EVOK WebSocket push/command frames and /rest/all snapshot)
"""
