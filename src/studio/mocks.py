"""Sample data served when no usable credential is configured."""
from __future__ import annotations

import random

from .models import Benefit, Product, SalesPage, Testimonial

# Simulated latency, in seconds, before a mock result is returned.
MOCK_DELAYS = {
    "importing": 1.0,
    "video": 1.0,
    "images": 1.5,
    "copy": 1.0,
    "page": 2.0,
}

MOCK_PRODUCT = Product(
    title="Smartwatch Pro X",
    description=(
        "O relógio inteligente definitivo para um estilo de vida ativo. Monitore sua saúde, receba "
        "notificações e fique conectado com estilo. Bateria de longa duração e design à prova d'água."
    ),
    images=("https://picsum.photos/seed/watch1/800/800", "https://picsum.photos/seed/watch2/800/800"),
    variations=("Preto", "Prata", "Azul"),
    supplier_price=45.50,
)

MOCK_VIDEO_SCRIPT = (
    "**Cena 1:** Close-up do Smartwatch Pro X no pulso de alguém correndo.\n\n"
    "**Texto na tela:** Cansado de ser mediano?\n\n"
    "**Voz:** Eleve seu jogo. O Smartwatch Pro X está aqui.\n\n"
    "**Cena 2:** Pessoa recebe uma notificação de mensagem no relógio e sorri.\n\n"
    "**CTA:** Arrasta pra cima e garanta o seu!"
)

MOCK_AD_COPY_TEMPLATE = (
    "🚀 Transforme sua vida com o {title}! 🚀 Monitore sua saúde, fique conectado e faça tudo com "
    "estilo. 💪\n\n🔥 OFERTA ESPECIAL: 50% OFF + Frete Grátis! 🔥\n\n"
    "Clique no link para garantir o seu antes que acabe! 👉 [LINK]"
)

MOCK_SALES_PAGE = SalesPage(
    headline="Transforme Seu Pulso no Centro de Comando da Sua Vida com o Smartwatch Pro X!",
    opening=(
        "Cansado de perder notificações importantes e lutar para acompanhar suas metas de saúde? "
        "O Smartwatch Pro X não é apenas um relógio. É seu assistente pessoal, seu personal trainer "
        "e sua conexão com o mundo, tudo em um design elegante e poderoso."
    ),
    benefits=(
        Benefit(
            icon="Heart",
            title="Monitoramento de Saúde 24/7",
            text="Acompanhe sua frequência cardíaca, oxigênio no sangue e padrões de sono com precisão.",
        ),
        Benefit(
            icon="Message",
            title="Notificações Instantâneas",
            text="Nunca perca uma chamada, mensagem ou alerta importante. Veja tudo diretamente no seu pulso.",
        ),
        Benefit(
            icon="Battery",
            title="Bateria de Longa Duração",
            text="Passe dias sem recarregar. Nossa bateria otimizada acompanha seu ritmo de vida agitado.",
        ),
    ),
    how_it_works=(
        "É simples! Conecte o Smartwatch Pro X ao seu smartphone via Bluetooth, instale nosso aplicativo "
        "gratuito e comece a personalizar mostradores e notificações. Em minutos, você estará no controle total."
    ),
    testimonials=(
        Testimonial(
            name="Joana F.",
            text=(
                "Absolutamente incrível! Me ajuda a manter o foco nos treinos e a não perder nenhuma "
                "ligação do trabalho. Recomendo!"
            ),
            rating=5,
        ),
        Testimonial(
            name="Carlos M.",
            text="O design é muito premium e a bateria dura muito mais do que meu relógio antigo. Valeu cada centavo.",
            rating=5,
        ),
    ),
    urgency=(
        "Oferta por tempo limitado! Compre agora e receba 50% de desconto e frete grátis para todo o Brasil. "
        "Estoque acabando!"
    ),
    cta="Eu Quero Meu Smartwatch Pro X Agora!",
)


def mock_ad_copy(title: str) -> str:
    return MOCK_AD_COPY_TEMPLATE.format(title=title)


def mock_lifestyle_image_url() -> str:
    return f"https://picsum.photos/seed/{random.random()}/1024/1024"
