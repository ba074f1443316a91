"""Ponte de webhooks GCP <-> Twist.

Este pacote contém:
- constants: variáveis de ambiente e textos fixos
- models: configuração de entrega e registros de integração
- registry: armazenamento persistente das integrações (instalações do Twist)
- normalizer: conversão dos alertas do GCP em mensagens de texto
- services: entrega das mensagens no Twist (thread de despacho)
- coordinator: orquestração dos eventos de instalação e alertas
- controller: criação do Flask app e endpoints
"""
